from __future__ import annotations

import argparse
from pathlib import Path

from dictclient.config import load_settings
from dictclient.server.server import DictServer


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(description="Local DICT test server over a YAML corpus.")
    p.add_argument("--host", default="")
    p.add_argument("--port", type=int, default=None)
    p.add_argument("--corpus", default="", help="Path to corpus YAML (defaults to packaged corpus)")
    p.add_argument("--fault-profile", default="", help="Fault profile name from the corpus")
    p.add_argument("--seed", type=int, default=None)
    args = p.parse_args(argv)

    s = load_settings()
    server = DictServer(
        args.host or s.host,
        args.port if args.port is not None else s.port,
        corpus_path=Path(args.corpus) if args.corpus else None,
        fault_profile=args.fault_profile or None,
        seed=args.seed,
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("[dictd] KeyboardInterrupt -> stopping")
        server.stop()


if __name__ == "__main__":
    main()
