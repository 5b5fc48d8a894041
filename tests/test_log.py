"""
Tests for the structured log router.
"""

import io
import json
import logging
import threading
import time

import pytest

from utilkit.core.config import Config, set_config
from utilkit.errors import ValidationError
from utilkit.log import (
    MDC, Appender, ConsoleAppender, FileAppender, JsonAppender, LogEvent, LogFilters,
    LoggingAppender, LogLevel, LogManager, MemoryAppender, get_log_manager, get_logger,
    initialize, set_log_manager,
)


class FailingAppender(Appender):
    def append(self, event):
        raise RuntimeError("disk gone")


@pytest.fixture
def manager():
    manager = LogManager(LogLevel.INFO)
    manager.register_appender("memory", MemoryAppender())
    return manager


@pytest.fixture
def memory(manager):
    return manager.get_appender("memory")


@pytest.fixture(autouse=True)
def clean_context():
    MDC.clear()
    yield
    MDC.clear()


class TestLogLevel:
    """Test level ordering and parsing"""

    def test_ordering(self):
        assert LogLevel.TRACE < LogLevel.DEBUG < LogLevel.INFO < LogLevel.WARN
        assert LogLevel.ERROR.is_at_least(LogLevel.WARN)
        assert not LogLevel.DEBUG.is_at_least(LogLevel.INFO)
        assert LogLevel.FATAL.severity == 600

    @pytest.mark.parametrize("text,level", [
        ("info", LogLevel.INFO), ("WARN", LogLevel.WARN), ("warning", LogLevel.WARN),
        ("Critical", LogLevel.FATAL), (" trace ", LogLevel.TRACE),
    ])
    def test_parse(self, text, level):
        assert LogLevel.parse(text) is level

    @pytest.mark.parametrize("value", ["LOUD", "", None, 3])
    def test_parse_invalid(self, value):
        with pytest.raises(ValidationError):
            LogLevel.parse(value)

    def test_logging_levels(self):
        assert LogLevel.WARN.to_logging_level() == logging.WARNING
        assert LogLevel.TRACE.to_logging_level() == 5


class TestLogEvent:
    """Test event construction"""

    def test_builder(self):
        error = ValueError("bad")
        event = (LogEvent.builder().message("hello").level(LogLevel.WARN)
                 .logger("app").field("user", "ada").fields({"n": 1}).error(error).build())
        assert event.message == "hello"
        assert event.level is LogLevel.WARN
        assert event.logger_name == "app"
        assert event.fields == {"user": "ada", "n": 1}
        assert event.error is error
        assert event.timestamp.tzinfo is not None

    def test_fields_are_immutable(self):
        source = {"a": 1}
        event = LogEvent("m", LogLevel.INFO, "app", _fields=source)
        source["a"] = 2
        event.fields["a"] = 3
        assert event.get_field("a") == 1
        assert event.has_field("a")
        assert not event.has_field("b")

    def test_none_key_rejected(self):
        with pytest.raises(ValidationError):
            LogEvent.builder().field(None, 1)


class TestRouting:
    """Test level thresholds and appender dispatch"""

    def test_root_level_threshold(self, manager, memory):
        logger = manager.get_logger("app")
        logger.debug("hidden")
        logger.info("shown")
        logger.error("also shown")
        assert [e.message for e in memory.get_entries()] == ["shown", "also shown"]

    def test_parent_level_applies_to_children(self, manager, memory):
        manager.set_log_level("app.db", LogLevel.DEBUG)
        assert manager.get_effective_level("app.db.pool") is LogLevel.DEBUG
        assert manager.get_effective_level("app.web") is LogLevel.INFO
        assert manager.get_effective_level("app.dbx") is LogLevel.INFO

        manager.get_logger("app.db.pool").debug("query")
        manager.get_logger("app.web").debug("request")
        assert [e.logger_name for e in memory.get_entries()] == ["app.db.pool"]

        manager.clear_log_level("app.db")
        assert manager.get_effective_level("app.db.pool") is LogLevel.INFO

    def test_direct_events_respect_effective_level(self, manager, memory):
        manager.log(LogEvent("too low", LogLevel.TRACE, "app"))
        manager.log(LogEvent("error", LogLevel.ERROR, "app"))
        assert [e.message for e in memory.get_entries()] == ["error"]

    def test_appender_threshold(self, manager):
        everything = MemoryAppender()
        console = io.StringIO()
        manager.register_appender("console", ConsoleAppender(LogLevel.ERROR, stream=console))
        manager.register_appender("all", everything)
        manager.get_logger("app").warn("careful")
        assert console.getvalue() == ""
        assert len(everything) == 1

    def test_failing_appender_does_not_stop_dispatch(self, manager, memory, capsys):
        manager.register_appender("broken", FailingAppender())
        manager.register_appender("after", MemoryAppender())
        manager.get_logger("app").info("still delivered")
        assert len(memory) == 1
        assert len(manager.get_appender("after")) == 1
        assert "Log appender 'broken' failed: disk gone" in capsys.readouterr().err

    def test_remove_appender(self, manager, memory):
        assert manager.remove_appender("memory") is memory
        manager.get_logger("app").info("nowhere")
        assert len(memory) == 0
        assert manager.remove_appender("memory") is None

    def test_loggers_are_cached(self, manager):
        assert manager.get_logger("app") is manager.get_logger("app")

    def test_logger_name_from_class_and_module(self, manager):
        assert manager.get_logger(LogManager).name == "utilkit.log.manager.LogManager"
        assert manager.get_logger(json).name == "json"
        with pytest.raises(ValidationError):
            manager.get_logger(42)

    def test_warning_alias(self, manager, memory):
        manager.get_logger("app").warning("alias")
        assert memory.get_entries()[0].level is LogLevel.WARN


class TestFilters:
    """Test event filters"""

    def test_all_filters_must_accept(self, manager, memory):
        manager.add_filter("level", LogFilters.by_level(LogLevel.INFO, LogLevel.ERROR))
        manager.add_filter("logger", LogFilters.by_logger("app."))
        manager.get_logger("app.web").info("kept")
        manager.get_logger("app.web").warn("wrong level")
        manager.get_logger("other").info("wrong logger")
        assert [e.message for e in memory.get_entries()] == ["kept"]

        manager.remove_filter("logger")
        manager.get_logger("other").info("now kept")
        assert len(memory) == 2

    def test_text_and_field_filters(self, manager, memory):
        manager.add_filter("text", LogFilters.contains_text("payment"))
        manager.add_filter("field", LogFilters.by_field("tenant", "acme"))
        logger = manager.get_logger("app")
        with MDC.scoped(tenant="acme"):
            logger.info("payment received")
            logger.info("login")
        logger.info("payment received")
        assert [e.message for e in memory.get_entries()] == ["payment received"]

    def test_raising_filter_rejects_event(self, manager, memory, capsys):
        manager.add_filter("broken", lambda event: 1 / 0)
        manager.get_logger("app").info("dropped")
        assert len(memory) == 0
        assert "Log filter 'broken' failed" in capsys.readouterr().err

    def test_filter_must_be_callable(self, manager):
        with pytest.raises(ValidationError):
            manager.add_filter("bad", "not callable")


class TestContextFields:
    """Test MDC and logger-scoped fields"""

    def test_mdc_fields_are_attached(self, manager, memory):
        MDC.put("request_id", "r-1")
        manager.get_logger("app").info("hello")
        assert memory.get_entries()[0].fields == {"request_id": "r-1"}

    def test_mdc_scoped_restores_previous_values(self):
        MDC.put("user", "outer")
        with MDC.scoped({"user": "inner"}, trace="t"):
            assert MDC.get("user") == "inner"
            assert MDC.get("trace") == "t"
        assert MDC.get_copy_of_context_map() == {"user": "outer"}

    def test_mdc_is_per_thread(self):
        MDC.put("thread", "main")
        seen = []
        worker = threading.Thread(target=lambda: seen.append(MDC.get("thread")))
        worker.start()
        worker.join()
        assert seen == [None]

    def test_logger_fields_override_mdc(self, manager, memory):
        logger = manager.get_logger("app")
        MDC.put("source", "mdc")
        logger.with_fields({"source": "logger", "step": 1}, lambda: logger.info("inside"))
        logger.info("outside")
        inside, outside = memory.get_entries()
        assert inside.fields == {"source": "logger", "step": 1}
        assert outside.fields == {"source": "mdc"}

    def test_with_field_returns_result_and_restores_on_error(self, manager, memory):
        logger = manager.get_logger("app")
        assert logger.with_field("k", "v", lambda: 42) == 42

        def fail():
            logger.info("before failure")
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            logger.with_field("k", "v", fail)
        logger.info("after")
        entries = memory.get_entries()
        assert entries[0].fields == {"k": "v"}
        assert entries[1].fields == {}

    def test_nested_field_context(self, manager, memory):
        logger = manager.get_logger("app")
        with logger.field_context(a=1):
            with logger.field_context(a=2, b=3):
                logger.info("inner")
            logger.info("outer")
        assert [e.fields for e in memory.get_entries()] == [{"a": 2, "b": 3}, {"a": 1}]

    def test_structured_logger(self, manager, memory):
        logger = manager.get_logger("app")
        logger.structured().field("order", 7).fields({"total": 9.5}).info("placed")
        logger.info("plain")
        placed, plain = memory.get_entries()
        assert placed.fields == {"order": 7, "total": 9.5}
        assert plain.fields == {}


class TestPerformance:
    """Test timing helpers"""

    def test_timed_logs_even_on_error(self, manager, memory):
        logger = manager.get_logger("app")
        assert logger.timed("load", lambda: "done") == "done"
        with pytest.raises(ValueError):
            logger.timed("fail", lambda: int("x"))
        messages = [e.message for e in memory.get_entries()]
        assert messages[0].startswith("Operation 'load' completed in ")
        assert messages[1].startswith("Operation 'fail' completed in ")
        assert messages[1].endswith(" ms")

    def test_tracker_checkpoints(self, manager, memory):
        logger = manager.get_logger("app")
        with logger.track_performance("import") as tracker:
            time.sleep(0.02)
            tracker.checkpoint("read")
            tracker.checkpoint("write")
        tracker.stop()
        tracker.checkpoint("late")

        entries = memory.get_entries()
        assert len(entries) == 1
        event = entries[0]
        assert event.message == "Performance tracking completed for operation: import"
        assert event.get_field("operation") == "import"
        assert event.get_field("checkpoint.read.ms") >= 10
        assert event.has_field("checkpoint.write.ms")
        assert not event.has_field("checkpoint.late.ms")
        assert event.get_field("total_duration_ms") >= event.get_field("checkpoint.read.ms")
        assert list(tracker.checkpoints) == ["read", "write"]

    def test_checkpoints_chain(self, manager, memory):
        tracker = manager.get_logger("app").track_performance("batch")
        assert tracker.checkpoint("a").checkpoint("b") is tracker
        tracker.stop()
        assert list(tracker.checkpoints) == ["a", "b"]
        assert tracker.checkpoint("c") is tracker


class TestAppenders:
    """Test appender output formats"""

    def _event(self, **fields):
        return LogEvent("hello", LogLevel.INFO, "app", _fields=fields)

    def test_console_format(self):
        stream = io.StringIO()
        ConsoleAppender(stream=stream).append(self._event(user="ada", n=2))
        line = stream.getvalue()
        assert "[INFO] app: hello - user=ada, n=2" in line
        assert line.endswith("\n")

    def test_console_includes_traceback(self):
        stream = io.StringIO()
        try:
            raise KeyError("missing")
        except KeyError as e:
            event = LogEvent("failed", LogLevel.ERROR, "app", error=e)
        ConsoleAppender(stream=stream).append(event)
        assert "Traceback" in stream.getvalue()
        assert "KeyError" in stream.getvalue()

    def test_json_appender(self):
        output = io.StringIO()
        event = LogEvent("hello", LogLevel.WARN, "app", _fields={"obj": object()},
                         error=ValueError("bad"))
        JsonAppender(output).append(event)
        data = json.loads(output.getvalue())
        assert data["level"] == "WARN"
        assert data["logger"] == "app"
        assert data["message"] == "hello"
        assert data["fields"]["obj"].startswith("<object object")
        assert data["error"] == {"type": "ValueError", "message": "bad"}

    def test_file_appender(self, tmp_path):
        path = tmp_path / "app.log"
        appender = FileAppender(str(path))
        appender.append(self._event(a=1))
        appender.append(self._event())
        lines = path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["fields"] == {"a": 1}
        assert "fields" not in json.loads(lines[1])

    def test_memory_appender_is_bounded(self):
        appender = MemoryAppender(max_entries=2)
        for i in range(3):
            appender.append(LogEvent(str(i), LogLevel.TRACE, "app"))
        assert [e.message for e in appender.get_entries()] == ["1", "2"]
        appender.clear()
        assert len(appender) == 0
        with pytest.raises(ValidationError):
            MemoryAppender(max_entries=0)

    def test_logging_appender(self, caplog):
        with caplog.at_level(logging.INFO, logger="utilkit.tests"):
            LoggingAppender("utilkit.tests").append(self._event(k="v"))
        record = caplog.records[0]
        assert record.getMessage() == "hello"
        assert record.fields == {"k": "v"}
        assert record.utilkit_logger == "app"


class TestGlobalManager:
    """Test the process-wide manager"""

    @pytest.fixture(autouse=True)
    def reset(self):
        set_log_manager(None)
        set_config(None)
        yield
        set_log_manager(None)
        set_config(None)

    def test_get_logger_uses_global_manager(self):
        logger = get_logger("app")
        assert logger.manager is get_log_manager()

    def test_initialize_from_config(self):
        config = Config()
        config.log.root_level = "DEBUG"
        config.log.console_threshold = "WARN"
        set_config(config)

        manager = initialize(LogManager())
        assert manager.root_level is LogLevel.DEBUG
        console = manager.get_appender("console")
        assert isinstance(console, ConsoleAppender)
        assert console.threshold is LogLevel.WARN


class TestConcurrency:
    """Test appenders and the manager from several threads"""

    def test_memory_appender_concurrent_append(self):
        appender = MemoryAppender(max_entries=10_000)
        snapshots = []

        def worker(n):
            for i in range(200):
                appender.append(LogEvent(f"{n}-{i}", LogLevel.INFO, "app"))
                if i % 50 == 0:
                    snapshots.append(len(appender.get_entries()))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(appender) == 1600
        assert len({e.message for e in appender.get_entries()}) == 1600
        assert all(0 < size <= 1600 for size in snapshots)

    def test_concurrent_registration_and_logging(self, manager, memory):
        logger = manager.get_logger("app")
        extra = [MemoryAppender() for _ in range(8)]

        def worker(n):
            manager.register_appender(f"extra-{n}", extra[n])
            manager.set_log_level(f"app.worker{n}", LogLevel.DEBUG)
            for i in range(50):
                logger.info(f"{n}-{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(memory) == 400
        assert all(manager.get_appender(f"extra-{n}") is extra[n] for n in range(8))
        assert all(manager.get_effective_level(f"app.worker{n}") == LogLevel.DEBUG
                   for n in range(8))
        assert all(0 < len(appender) <= 400 for appender in extra)
