"""Application configuration.

AppConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = AppConfig(debug=True, port=3000)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Reload (development mode, requires debug=True)
    reload_dirs: tuple[str, ...] = ()  # Extra directories to watch alongside cwd

    # Body served for unmatched routes (overridable with App.not_found)
    not_found_body: str = "Not Found"

    # Limits
    max_content_length: int = 16 * 1024 * 1024  # 16 MB
