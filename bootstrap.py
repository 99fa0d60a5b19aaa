"""
Bootstrap script to ensure essential configuration files exist in the config volume.
Copies factory defaults from defaults/ to the config directory if files are missing.
"""
import json
import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

# Project structure
PROJECT_ROOT = Path(__file__).parent
DEFAULTS_DIR = PROJECT_ROOT / "defaults"


def ensure_config_files(config_dir: Path | None = None, defaults_dir: Path = DEFAULTS_DIR) -> list[str]:
    """Verify and restore missing config files from the defaults folder.

    Returns the names of the files that were restored or repaired.
    """
    config_dir = config_dir or Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))
    config_dir.mkdir(parents=True, exist_ok=True)
    restored: list[str] = []

    if not defaults_dir.exists():
        logger.warning("Defaults directory not found at %s", defaults_dir)
        return restored

    # 1. users.json
    src = defaults_dir / "users.json"
    dst = config_dir / "users.json"
    if not dst.exists() and src.exists():
        logger.info("Restoring missing config file: users.json")
        shutil.copy2(src, dst)
        restored.append("users.json")
    elif dst.exists() and src.exists():
        # Repair corrupted users.json
        try:
            if dst.stat().st_size == 0:
                raise ValueError("Empty file")
            with open(dst, "r", encoding="utf-8") as f:
                json.load(f)
        except (json.JSONDecodeError, ValueError):
            logger.warning("Repairing invalid users.json")
            shutil.copy2(src, dst)
            restored.append("users.json")

    # 2. Jinja2 templates
    templates_dir = config_dir / "templates"
    templates_dir.mkdir(exist_ok=True)
    for src_template in defaults_dir.glob("*.j2"):
        dst_template = templates_dir / src_template.name
        if not dst_template.exists():
            logger.info("Restoring missing template: %s", src_template.name)
            shutil.copy2(src_template, dst_template)
            restored.append(src_template.name)

    return restored


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[Bootstrap] %(message)s")
    ensure_config_files()
