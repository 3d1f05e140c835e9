from dataclasses import dataclass

from .proximity import SeverityThresholds


@dataclass
class UtilitrackConfig:
    """Configuration for excavation monitoring and the replay CLI."""

    position_capacity: int = 8
    accuracy_threshold_m: float = 15.0
    max_speed_mps: float = 30.0
    min_samples_for_speed_check: int = 3
    heading_capacity: int = 10
    critical_ft: float = 5.0
    danger_ft: float = 10.0
    caution_ft: float = 25.0
    warning_ft: float = 50.0
    dismiss_cooldown_ms: int = 300_000
    tick_interval_ms: int = 2_500
    connection_max_distance_m: float = 20.0
    log_level: str = "WARNING"
    metrics: bool = False

    def severity_thresholds(self) -> SeverityThresholds:
        return SeverityThresholds(
            critical=self.critical_ft,
            danger=self.danger_ft,
            caution=self.caution_ft,
            warning=self.warning_ft,
        )
