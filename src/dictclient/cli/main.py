from __future__ import annotations

import argparse

from dictclient.config import load_settings


def _add_conn_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--host", default="")
    p.add_argument("--port", type=int, default=None)
    p.add_argument("--timeout", type=float, default=None, help="Socket timeout in seconds")
    p.add_argument("--transcript-dir", default="", help="Write a JSONL/CSV session transcript under this dir")


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="dictc", description="DICT protocol (RFC 2229) client")
    sub = p.add_subparsers(dest="cmd", required=True)

    # serve
    p_srv = sub.add_parser("serve", help="Run the local DICT test server")
    p_srv.add_argument("rest", nargs=argparse.REMAINDER, help="Arguments for the server")
    p_srv.set_defaults(_entry="dictclient.cli.run_server")

    # define
    p_def = sub.add_parser("define", help="Look up definitions of a word")
    p_def.add_argument("word")
    p_def.add_argument("--db", default="", help="Database name, '*' for all, '!' for first match")
    _add_conn_args(p_def)
    p_def.set_defaults(_entry="dictclient.cli.lookup")

    # match
    p_match = sub.add_parser("match", help="List headwords matching a word")
    p_match.add_argument("word")
    p_match.add_argument("--db", default="")
    p_match.add_argument("--strategy", default="", help="Matching strategy, '.' for server default")
    _add_conn_args(p_match)
    p_match.set_defaults(_entry="dictclient.cli.lookup")

    # databases / strategies
    p_dbs = sub.add_parser("databases", help="List the server's databases")
    _add_conn_args(p_dbs)
    p_dbs.set_defaults(_entry="dictclient.cli.lookup")

    p_strat = sub.add_parser("strategies", help="List the server's matching strategies")
    _add_conn_args(p_strat)
    p_strat.set_defaults(_entry="dictclient.cli.lookup")

    # info
    p_info = sub.add_parser("info", help="Show information about a database")
    p_info.add_argument("db")
    _add_conn_args(p_info)
    p_info.set_defaults(_entry="dictclient.cli.lookup")

    args = p.parse_args(argv)

    if args._entry == "dictclient.cli.run_server":
        from dictclient.cli.run_server import main as _m

        _m(args.rest)
        return

    if args._entry == "dictclient.cli.lookup":
        from dictclient.cli.lookup import run_lookup

        raise SystemExit(run_lookup(args, load_settings()))

    raise SystemExit(2)


if __name__ == "__main__":
    main()
