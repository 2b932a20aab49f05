from __future__ import annotations

import importlib.resources as importlib_resources
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml
from pydantic import ValidationError

from dictclient.server.corpus_schema import Corpus


def _read_corpus_raw(path: Optional[Path]) -> Tuple[Dict[str, Any], str]:
    """Locate the corpus YAML.

    Order:
    1) Explicit path arg (must exist)
    2) DICT_CORPUS env var (if set + exists)
    3) CWD-relative corpus.yaml (dev workflow)
    4) Packaged default (dictclient/resources/corpus.yaml)
    """
    if path is not None:
        if not path.exists():
            raise FileNotFoundError(f"Corpus file not found: {path}")
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}, str(path)

    env_path = os.getenv("DICT_CORPUS", "").strip()
    if env_path:
        p = Path(env_path)
        if p.exists():
            return yaml.safe_load(p.read_text(encoding="utf-8")) or {}, str(p)

    dev = Path("corpus.yaml")
    if dev.exists():
        return yaml.safe_load(dev.read_text(encoding="utf-8")) or {}, str(dev)

    txt = importlib_resources.files("dictclient").joinpath("resources/corpus.yaml").read_text(encoding="utf-8")
    return yaml.safe_load(txt) or {}, "dictclient/resources/corpus.yaml"


def load_corpus(path: Optional[Path] = None) -> Corpus:
    """Load + validate a server corpus.

    Validation:
    - Pydantic schema validation (required keys, types)
    - Unique database and strategy names, no reserved database names
    - Strategies limited to the ones the server implements
    """
    raw, source = _read_corpus_raw(path)
    try:
        return Corpus.model_validate(raw)
    except ValidationError as e:
        # Re-raise with a cleaner message for CLI usage
        raise ValueError(f"Invalid corpus YAML: {source}\n{e}") from e
