from __future__ import annotations


class NotFoundError(LookupError):
    """
    Raised when an AOI name cannot be resolved to a boundary asset.
    Fatal for a pipeline run.
    """


class AmbiguousAoiError(ValueError):
    """
    Raised when a catalog search matches several assets and no
    deterministic winner exists.
    """

    def __init__(self, name: str, candidates: list[str]) -> None:
        self.name = name
        self.candidates = list(candidates)
        super().__init__(
            f"AOI name {name!r} matches {len(self.candidates)} assets: {self.candidates}"
        )


class ExportLimitError(ValueError):
    """Raised when a composite exceeds the export pixel ceiling."""


class ConfigError(ValueError):
    """Raised for invalid pipeline configuration."""
