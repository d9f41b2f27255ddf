import csv
import json
import time
from pathlib import Path


SUMMARY_FIELDS = [
    "session_started_at",
    "session_ended_at",
    "frames",
    "peaks",
    "peak_rate",
    "first_peak_frame",
    "last_peak_frame",
    "energy_min",
    "energy_max",
    "energy_mean",
    "cutoff_min",
    "cutoff_max",
    "threshold",
    "frames_per_peak",
]


class PeakSessionStats:
    """Accumulates per-frame detector readings for one run."""

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.started_at = time.time()
        self.frames = 0
        self.peaks = 0
        self.first_peak_frame: int | None = None
        self.last_peak_frame: int | None = None
        self.energy_min: float | None = None
        self.energy_max: float | None = None
        self.energy_sum = 0.0
        self.cutoff_min: float | None = None
        self.cutoff_max: float | None = None

    def record(self, detector) -> None:
        """Record the detector state right after an ``update`` call."""
        energy = float(detector.energy)
        cutoff = float(detector.cutoff)

        if detector.is_detected:
            self.peaks += 1
            if self.first_peak_frame is None:
                self.first_peak_frame = self.frames
            self.last_peak_frame = self.frames

        self.frames += 1
        self.energy_sum += energy
        if self.energy_min is None or energy < self.energy_min:
            self.energy_min = energy
        if self.energy_max is None or energy > self.energy_max:
            self.energy_max = energy
        if self.cutoff_min is None or cutoff < self.cutoff_min:
            self.cutoff_min = cutoff
        if self.cutoff_max is None or cutoff > self.cutoff_max:
            self.cutoff_max = cutoff

    def summary(self, detector=None) -> dict:
        frames = max(1, self.frames)
        result = {
            "session_started_at": self.started_at,
            "session_ended_at": time.time(),
            "frames": self.frames,
            "peaks": self.peaks,
            "peak_rate": self.peaks / frames,
            "first_peak_frame": self.first_peak_frame,
            "last_peak_frame": self.last_peak_frame,
            "energy_min": float(self.energy_min or 0.0),
            "energy_max": float(self.energy_max or 0.0),
            "energy_mean": self.energy_sum / frames,
            "cutoff_min": float(self.cutoff_min or 0.0),
            "cutoff_max": float(self.cutoff_max or 0.0),
        }
        if detector is not None:
            result["threshold"] = detector.threshold
            result["frames_per_peak"] = detector.frames_per_peak
        return result


class PeakSessionReporter:
    """Persists per-run peak summaries to JSON and CSV reports."""

    def __init__(self, report_dir: Path, max_sessions: int = 200):
        self.report_dir = Path(report_dir)
        self.report_dir.mkdir(parents=True, exist_ok=True)
        self.json_path = self.report_dir / "peak_session_report.json"
        self.csv_path = self.report_dir / "peak_session_report.csv"
        self.max_sessions = max(1, int(max_sessions))

    def _load_existing_sessions(self) -> list[dict]:
        if not self.json_path.exists():
            return []
        try:
            with open(self.json_path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, ValueError):
            return []
        sessions = payload.get("sessions", []) if isinstance(payload, dict) else []
        return sessions if isinstance(sessions, list) else []

    def save_session(self, session_summary: dict) -> None:
        sessions = self._load_existing_sessions()
        sessions.append(dict(session_summary))
        if len(sessions) > self.max_sessions:
            sessions = sessions[-self.max_sessions :]

        payload = {
            "generated_at": time.time(),
            "session_count": len(sessions),
            "latest": sessions[-1],
            "sessions": sessions,
        }

        with open(self.json_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

        with open(self.csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=SUMMARY_FIELDS)
            writer.writeheader()
            for row in sessions:
                writer.writerow({key: row.get(key, "") for key in SUMMARY_FIELDS})
