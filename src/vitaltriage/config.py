"""Configuration for the analyzer and the HTTP service."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class AnalyzerConfig:
    fs: float = 30.0  # nominal capture rate (Hz)
    window_sec: float = 10.0  # sliding window length
    ready_fraction: float = 0.6  # buffer fill required before analyze()
    bpm_min: float = 42.0
    bpm_max: float = 240.0
    min_peaks: int = 4
    filter_order: int = 3
    dark_threshold: float = 50.0  # mean channel value
    bright_threshold: float = 200.0
    motion_threshold: float = 15.0  # summed |dR|+|dG|+|dB| between frames
    motion_fraction: float = 0.1  # share of flagged frames that downgrades quality

    @property
    def capacity(self) -> int:
        return max(1, int(round(self.fs * self.window_sec)))


class ServiceSettings(BaseSettings):
    """Service settings read from ``VITALTRIAGE_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="VITALTRIAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 8000
    analysis_interval: float = 1.0
    log_dir: str = "logs"
    log_level: str = "INFO"
    fs: float = 30.0
    window_sec: float = 10.0

    def analyzer_config(self) -> AnalyzerConfig:
        return AnalyzerConfig(fs=self.fs, window_sec=self.window_sec)
