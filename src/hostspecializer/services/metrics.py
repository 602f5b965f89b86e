"""Latency measurement and specialization report service."""

import json
import os
import tempfile
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional


@dataclass(frozen=True)
class LatencyEvent:
    name: str
    started_at: str
    duration_ms: float
    failed: bool = False


class MetricsLogger:
    """Times named pipeline steps and writes them as a JSON report."""

    def __init__(self, logger):
        self.logger = logger
        self.events: List[LatencyEvent] = []

    @contextmanager
    def latency_event(self, name: str) -> Iterator[None]:
        started_at = self._now()
        start = time.monotonic()
        failed = False
        try:
            yield
        except BaseException:
            failed = True
            raise
        finally:
            duration_ms = (time.monotonic() - start) * 1000
            self.events.append(LatencyEvent(name, started_at, round(duration_ms, 3), failed))
            self.logger.debug("%s took %.1fms", name, duration_ms)

    def event_names(self) -> List[str]:
        return [event.name for event in self.events]

    def build_report(self, extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        report: Dict[str, Any] = {
            "generated_at": self._now(),
            "events": [asdict(event) for event in self.events],
        }
        if extra:
            report.update(extra)
        return report

    def write(self, report_file: str, extra: Optional[Dict[str, Any]] = None):
        os.makedirs(os.path.dirname(report_file) or ".", exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            prefix="specialization-report-",
            suffix=".json",
            dir=os.path.dirname(report_file) or ".",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file_obj:
                json.dump(self.build_report(extra), file_obj, indent=2, sort_keys=True)
                file_obj.write("\n")
            os.replace(temp_path, report_file)
        except OSError as exc:
            self.logger.warning("Could not write report file '%s': %s", report_file, exc)
            try:
                os.remove(temp_path)
            except OSError:
                pass

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()
