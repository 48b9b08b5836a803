from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional


def _optional_float(raw: str | None) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    return float(raw)


class Settings:
    """Centralized configuration for the record service and its client."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        # ---- Record Store (server) ----
        self.data_root: Path = Path(
            os.environ.get("MILKYWAY_DATA_ROOT") or data_root_default
        ).expanduser()
        self.db_path: Path = Path(
            os.environ.get("MILKYWAY_DB_PATH") or (self.data_root / "records.db")
        ).expanduser()
        self.host: str = os.environ.get("MILKYWAY_HOST") or os.environ.get("HOST") or "0.0.0.0"
        self.port: int = int(os.environ.get("MILKYWAY_PORT") or os.environ.get("PORT") or "3000")
        # Photos travel inline as base64, so the body limit is generous.
        self.max_body_bytes: int = int(os.environ.get("MILKYWAY_MAX_BODY_BYTES") or str(50 * 1024 * 1024))

        # ---- Local Cache / Sync client ----
        self.cache_path: Path = Path(
            os.environ.get("MILKYWAY_CACHE_PATH") or (Path.home() / ".milkyway" / "records.json")
        ).expanduser()
        self.cache_max_bytes: int = int(os.environ.get("MILKYWAY_CACHE_MAX_BYTES") or str(5 * 1024 * 1024))
        self.api_base: str = os.environ.get("MILKYWAY_API_BASE", "http://127.0.0.1:3000/api")
        self.remote_timeout: Optional[float] = _optional_float(os.environ.get("MILKYWAY_REMOTE_TIMEOUT"))

        self.log_level: str = (os.environ.get("MILKYWAY_LOG_LEVEL") or "INFO").upper()

        # ---- Vision recognition (optional) ----
        self.qwen_api_key: str | None = os.environ.get("QWEN_API_KEY")
        self.qwen_base_url: str = os.environ.get(
            "QWEN_BASE_URL", "https://dashscope.aliyuncs.com/compatible-mode/v1"
        )
        self.qwen_vl_model: str = os.environ.get("QWEN_VL_MODEL", "qwen-vl-max")
        self.qwen_timeout: float = float(os.environ.get("QWEN_TIMEOUT", "60"))
        self.qwen_max_tokens: int = int(os.environ.get("QWEN_MAX_TOKENS", "800"))
        self.vision_max_image_bytes: int = int(os.environ.get("MILKYWAY_VISION_MAX_IMAGE_BYTES") or "8000000")

        cors = os.environ.get("MILKYWAY_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]


settings = Settings()
