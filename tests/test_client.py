import pytest

from conftest import GREETING, reply
from dictclient.model import Definition
from dictclient.net import connection as connection_module
from dictclient.net.client import DictClient


def test_call_returns_items(start_server):
    server = start_server()
    with DictClient("127.0.0.1", server.port, 2.0) as client:
        res = client.call("define", "cat", "wn")
        assert res.ok and res.error_code is None
        assert isinstance(res.items[0], Definition)

        res = client.call("match", "ca", "prefix", "wn")
        assert res.items == ["cat", "cats", "catalog"]

        assert [d.name for d in client.call("databases").items] == ["wn", "foldoc"]
        assert client.call("info", "foldoc").items == ["Free On-line Dictionary of Computing"]


def test_nothing_found_is_ok_without_items(start_server):
    server = start_server()
    with DictClient("127.0.0.1", server.port, 2.0) as client:
        res = client.call("define", "zebra")
        assert res.ok
        assert res.items == []
        assert res.message == "No results"


def test_semantic_error_is_tagged(start_server):
    server = start_server()
    with DictClient("127.0.0.1", server.port, 2.0) as client:
        res = client.call("define", "cat", "nope")
        assert not res.ok
        assert res.error_code == "E_INVALID_DATABASE"
        res = client.call("match", "cat", "soundex", "wn")
        assert res.error_code == "E_INVALID_STRATEGY"
        # the session survives semantic errors
        assert client.call("strategies").ok


def test_handshake_failure_is_tagged(start_server):
    server = start_server("denied")
    client = DictClient("127.0.0.1", server.port, 2.0)
    res = client.call("databases")
    assert not res.ok
    assert res.error_code == "E_ACCESS_DENIED"


def test_transport_failure_is_tagged(monkeypatch):
    def refuse(addr, timeout=None):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(connection_module.socket, "create_connection", refuse)
    res = DictClient("dict.test", 2628, 1.0).call("strategies")
    assert not res.ok
    assert res.error_code == "E_TRANSPORT"


def test_protocol_failure_drops_session(scripted):
    scripted(reply(GREETING, "152 1 matches found", 'wn "cat"', ".", "420 gone"))
    client = DictClient("dict.test", 2628, 1.0)
    res = client.call("match", "cat")
    assert res.error_code == "E_PROTOCOL"
    assert client._conn is None


def test_call_rejects_line_breaks_and_keeps_session(start_server):
    server = start_server()
    with DictClient("127.0.0.1", server.port, 2.0) as client:
        with pytest.raises(ValueError):
            client.call("define", "zzz\r\nMATCH wn exact", "wn")
        res = client.call("match", "ca", "prefix", "wn")
        assert res.ok
        assert res.items == ["cat", "cats", "catalog"]
