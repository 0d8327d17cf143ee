"""Durable client-side state: the active charge code.

Written at charge creation, read and cleared when verification resolves.
Lives on disk so it survives the trip through the hosted checkout.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger

CHARGE_CODE_KEY = "coinbase_charge_code"


class ChargeCodeStore:
    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> Dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable client state {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Atomic replace so a crash never leaves half a file behind
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp, self.path)

    def get(self) -> Optional[str]:
        code = self._read().get(CHARGE_CODE_KEY)
        return code if isinstance(code, str) and code else None

    def set(self, code: str) -> None:
        data = self._read()
        data[CHARGE_CODE_KEY] = code
        self._write(data)
        logger.debug(f"Stored charge code {code}")

    def clear(self) -> None:
        data = self._read()
        if CHARGE_CODE_KEY in data:
            del data[CHARGE_CODE_KEY]
            self._write(data)
            logger.debug("Cleared stored charge code")
