"""Engine settings, overridable through ``TURNENGINE_*`` environment variables."""

import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Runtime knobs shared by every GameEngine in the process."""

    # Upper bound on frame pops/pushes triggered by a single committed action
    max_phase_transitions: int = 64
    # Masked views kept per engine, keyed by (version, player)
    mask_cache_size: int = 256
    # Keep every committed state so masked patch streams can be rebuilt
    keep_history: bool = True
    # Compare per-entry state digests while replaying a log
    verify_digests: bool = True
    log_level: str = "WARNING"

    model_config = SettingsConfigDict(env_prefix="TURNENGINE_", env_file=".env", extra="ignore")


settings = EngineSettings()


def configure_logging(level: str | None = None) -> None:
    """Install a basic handler for the ``turnengine`` logger hierarchy."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
