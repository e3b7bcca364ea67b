"""
Observability and metrics collection for jz.
Tracks scanner hits, skipped files, and call-resolution outcomes.
"""
import logging
from typing import Dict, Any
from dataclasses import dataclass, field
from threading import Lock

logger = logging.getLogger(__name__)

@dataclass
class MetricsCollector:
    """Thread-safe metrics collector for jz analysis runs."""

    # Counters
    files_scanned: int = 0
    files_skipped: int = 0
    entry_points_detected: int = 0
    components_parsed: int = 0
    outbound_calls_detected: int = 0
    calls_resolved_same_service: int = 0
    calls_resolved_cross_service: int = 0
    calls_unresolved: int = 0
    flows_extracted: int = 0

    # Scanner hit rates
    detector_hits: Dict[str, int] = field(default_factory=dict)

    # Fallback tracking
    fallback_counts: Dict[str, int] = field(default_factory=dict)
    fallback_samples: Dict[str, list] = field(default_factory=dict)

    # Timing
    phase_timings: Dict[str, float] = field(default_factory=dict)

    # Thread safety
    _lock: Lock = field(default_factory=Lock)

    def record_file_scanned(self, skipped: bool = False):
        with self._lock:
            if skipped:
                self.files_skipped += 1
            else:
                self.files_scanned += 1

    def increment(self, counter: str, amount: int = 1):
        with self._lock:
            setattr(self, counter, getattr(self, counter) + amount)

    def record_detector_hit(self, detector_name: str, count: int = 1):
        """Record hits for a named scanner."""
        with self._lock:
            self.detector_hits[detector_name] = self.detector_hits.get(detector_name, 0) + count

    def record_resolution(self, scope: str):
        """Record the outcome of linking one outbound call."""
        with self._lock:
            if scope == "same-service":
                self.calls_resolved_same_service += 1
            elif scope == "cross-service":
                self.calls_resolved_cross_service += 1
            else:
                self.calls_unresolved += 1

    def record_fallback(self, reason_code: str, file_path: str, sample_limit: int = 10):
        """Record a fallback event with sample."""
        with self._lock:
            self.fallback_counts[reason_code] = self.fallback_counts.get(reason_code, 0) + 1
            if reason_code not in self.fallback_samples:
                self.fallback_samples[reason_code] = []
            if len(self.fallback_samples[reason_code]) < sample_limit:
                self.fallback_samples[reason_code].append(file_path)

    def record_phase_timing(self, phase: str, duration: float):
        with self._lock:
            self.phase_timings[phase] = duration

    def reset(self):
        with self._lock:
            self.files_scanned = 0
            self.files_skipped = 0
            self.entry_points_detected = 0
            self.components_parsed = 0
            self.outbound_calls_detected = 0
            self.calls_resolved_same_service = 0
            self.calls_resolved_cross_service = 0
            self.calls_unresolved = 0
            self.flows_extracted = 0
            self.detector_hits.clear()
            self.fallback_counts.clear()
            self.fallback_samples.clear()
            self.phase_timings.clear()

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            total_files = self.files_scanned + self.files_skipped
            total_calls = (self.calls_resolved_same_service + self.calls_resolved_cross_service
                           + self.calls_unresolved)

            return {
                "files": {
                    "scanned": self.files_scanned,
                    "skipped": self.files_skipped,
                    "total": total_files,
                },
                "detectors": {
                    "entry_points": self.entry_points_detected,
                    "components": self.components_parsed,
                    "outbound_calls": self.outbound_calls_detected,
                    "hit_rates": dict(self.detector_hits)
                },
                "resolution": {
                    "same_service": self.calls_resolved_same_service,
                    "cross_service": self.calls_resolved_cross_service,
                    "unresolved": self.calls_unresolved,
                    "unresolved_ratio": self.calls_unresolved / max(total_calls, 1)
                },
                "flows": {
                    "extracted": self.flows_extracted,
                },
                "fallbacks": {
                    "counts": dict(self.fallback_counts),
                    "samples": dict(self.fallback_samples)
                },
                "timing": {
                    "phase_timings": dict(self.phase_timings),
                }
            }

# Global metrics collector instance
_metrics_collector = MetricsCollector()

def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector instance."""
    return _metrics_collector

def record_fallback(reason_code: str, file_path: str):
    """Convenience function to record a fallback."""
    logger.debug(f"Skipping {file_path}: {reason_code}")
    _metrics_collector.record_fallback(reason_code, file_path)

def record_detector_hit(detector_name: str, count: int = 1):
    """Convenience function to record a detector hit."""
    _metrics_collector.record_detector_hit(detector_name, count)

def record_phase_timing(phase: str, duration: float):
    """Convenience function to record phase timing."""
    _metrics_collector.record_phase_timing(phase, duration)
