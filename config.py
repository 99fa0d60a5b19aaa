"""
Central configuration for the procurement console.

All paths, list-screen timings, session lifetimes and matching thresholds
are defined here.  Override via environment variables or by passing a
Config instance directly.

Settings priority (highest wins):
  1. config/console_settings.json  (admin-editable, persisted)
  2. Environment variables
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

# Default data locations (relative to project root)
DEFAULT_DATA_DIR       = PROJECT_ROOT / "data"
DEFAULT_SUPPLIERS_CSV  = DEFAULT_DATA_DIR / "suppliers.csv"
DEFAULT_PRODUCTS_CSV   = DEFAULT_DATA_DIR / "products.csv"
DEFAULT_PO_CSV         = DEFAULT_DATA_DIR / "purchase_orders.csv"
DEFAULT_PO_LINES_CSV   = DEFAULT_DATA_DIR / "purchase_order_lines.csv"
DEFAULT_DB_PATH        = DEFAULT_DATA_DIR / "console.db"
DEFAULT_UPLOADS_DIR    = DEFAULT_DATA_DIR / "uploads"
DEFAULT_CONFIG_DIR     = PROJECT_ROOT / "config"


@dataclass
class Config:
    # --- Data source paths ---
    suppliers_csv:  Path = field(default_factory=lambda: DEFAULT_SUPPLIERS_CSV)
    products_csv:   Path = field(default_factory=lambda: DEFAULT_PRODUCTS_CSV)
    po_csv:         Path = field(default_factory=lambda: DEFAULT_PO_CSV)
    po_lines_csv:   Path = field(default_factory=lambda: DEFAULT_PO_LINES_CSV)

    # --- Storage ---
    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))
    )
    uploads_dir: Path = field(
        default_factory=lambda: Path(os.getenv("UPLOADS_DIR", str(DEFAULT_UPLOADS_DIR)))
    )
    config_dir: Path = field(
        default_factory=lambda: Path(os.getenv("CONFIG_DIR", str(DEFAULT_CONFIG_DIR)))
    )

    # --- List screens ---
    page_size: int = field(
        default_factory=lambda: int(os.getenv("PAGE_SIZE", "10"))
    )
    search_debounce_ms: int = 800         # purchases; lighter lists use 300
    poll_interval_seconds: int = field(
        default_factory=lambda: int(os.getenv("POLL_INTERVAL", "30"))
    )

    # --- Sessions ---
    session_ttl_hours: int = field(
        default_factory=lambda: int(os.getenv("SESSION_TTL_HOURS", "12"))
    )
    remember_ttl_days: int = 30           # "remember me" logins
    bcrypt_rounds: int = field(
        default_factory=lambda: int(os.getenv("BCRYPT_ROUNDS", "12"))
    )

    # --- Supplier matching ---
    supplier_fuzzy_threshold: int = 75    # Minimum rapidfuzz score (0-100)

    # --- Receipts ---
    currency_symbol: str = "₹"
    currency_code:   str = "INR"
    receipt_template: str = "receipt.html.j2"

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from console_settings.json if present."""
        settings_file = self.config_dir / "console_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "page_size":                 int,
            "search_debounce_ms":        int,
            "poll_interval_seconds":     int,
            "session_ttl_hours":         int,
            "remember_ttl_days":         int,
            "supplier_fuzzy_threshold":  int,
            "currency_symbol":           str,
            "currency_code":             str,
            "receipt_template":          str,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load console_settings.json: %s", exc)

    @property
    def users_file(self) -> Path:
        return self.config_dir / "users.json"

    @property
    def templates_dir(self) -> Path:
        return self.config_dir / "templates"

    def ensure_data_dirs(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
