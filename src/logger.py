"""
Run-level analytics logging for the activation engine.

Module code logs through ``logging.getLogger(__name__)``; this logger only
carries the structured events and metrics of a resolution run, tagged with
the run id. JSON lines when LOG_FORMAT=json, readable lines otherwise.

Usage:
    from src.logger import logger

    logger.set_run("3f2a9c1b7e40")
    logger.event("module_activated", module_id="cache.simple", group="cache_manager")
    logger.metric("activation_run_modules", 18, matched=3)
    logger.clear_run()
"""

import logging
import json
import os
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from src.settings import settings


_run_id_var: ContextVar[Optional[str]] = ContextVar('run_id', default=None)


class StructuredLogger:
    """
    Emits EVENT and METRIC records for one resolution run at a time.

    The run id is context-local, so concurrent runs in different threads
    or tasks never tag each other's records.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)

        if not self.logger.handlers:
            self._setup_logger()

    def _setup_logger(self) -> None:
        level_name = settings.get_nested("logging.level", "INFO")
        level = getattr(logging, level_name.upper(), logging.INFO)
        self.logger.setLevel(level)

        handler = logging.StreamHandler()
        handler.setLevel(level)
        if self._should_use_json():
            handler.setFormatter(logging.Formatter("%(message)s"))
        else:
            handler.setFormatter(logging.Formatter(
                "[%(asctime)s] %(levelname)s - %(message)s",
                datefmt="%H:%M:%S"
            ))
        self.logger.addHandler(handler)
        self.logger.propagate = False

    @property
    def run_id(self) -> Optional[str]:
        return _run_id_var.get()

    def set_run(self, run_id: str) -> None:
        _run_id_var.set(run_id)

    def clear_run(self) -> None:
        _run_id_var.set(None)

    def _record(self, kind: str, name: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Build the JSON form of a record"""
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "kind": kind,
            "logger": self.name,
            "name": name,
        }
        if self.run_id:
            record["run_id"] = self.run_id
        record.update(fields)
        return record

    @staticmethod
    def _should_use_json() -> bool:
        return os.environ.get("LOG_FORMAT", "readable") == "json"

    def _emit(self, kind: str, name: str, **fields: Any) -> None:
        if self._should_use_json():
            line = json.dumps(self._record(kind, name, fields), ensure_ascii=False, default=str)
        else:
            extras = ", ".join(f"{k}={v}" for k, v in fields.items())
            line = f"{kind} {name}" + (f" [{extras}]" if extras else "")
            if self.run_id:
                line = f"[{self.run_id}] {line}"
        self.logger.info(line)

    def metric(self, name: str, value: Any, **fields: Any) -> None:
        """
        Numeric measurement for the current run.

        Example:
            logger.metric("activation_run_modules", 14, matched=6)
        """
        self._emit("METRIC", name, value=value, **fields)

    def event(self, event_type: str, **fields: Any) -> None:
        """Something that happened during the run (module activated, run started)."""
        self._emit("EVENT", event_type, **fields)


logger = StructuredLogger("autoconfigure")
