"""Tests for the command line front end."""

import json

import pytest

import cli
from services.market_data import MarketDataService, PriceBook


@pytest.fixture(autouse=True)
def offline_prices(monkeypatch):
    def fake_refresh(self, transactions, book=None):
        return book or PriceBook()

    monkeypatch.setattr(MarketDataService, "refresh_prices", fake_refresh)


def _add(*extra) -> int:
    return cli.main(["add", "--type", "buy", "--symbol", "THYAO", "--quantity", "10", "--price", "250", *extra])


class TestCommands:
    def test_add_and_history(self, capsys) -> None:
        assert _add() == 0
        assert cli.main(["history"]) == 0
        out = capsys.readouterr().out
        assert "THYAO" in out
        assert "Buys: 1" in out

    def test_oversell_rejected(self, capsys) -> None:
        _add()
        code = cli.main(["add", "--type", "sell", "--symbol", "THYAO", "--quantity", "11", "--price", "1"])
        assert code == 1
        assert "rejected" in capsys.readouterr().out

    def test_summary_without_refresh(self, capsys) -> None:
        _add()
        assert cli.main(["summary", "--no-refresh"]) == 0
        out = capsys.readouterr().out
        assert "Total cost:" in out
        assert "2,500.00" in out

    def test_export_then_import_append(self, tmp_path, capsys) -> None:
        _add()
        assert cli.main(["export", "--output", str(tmp_path)]) == 0
        [exported] = list(tmp_path.glob("portfolio-*.json"))
        assert len(json.loads(exported.read_text())["transactions"]) == 1

        assert cli.main(["import", "--file", str(exported), "--mode", "append"]) == 0
        capsys.readouterr()
        cli.main(["history"])
        assert "Buys: 2" in capsys.readouterr().out

    def test_import_replace_requires_yes(self, tmp_path, monkeypatch) -> None:
        _add()
        cli.main(["export", "--output", str(tmp_path / "backup.json")])
        monkeypatch.setattr("builtins.input", lambda _prompt: "n")
        assert cli.main(["import", "--file", str(tmp_path / "backup.json")]) == 1
        assert cli.main(["import", "--file", str(tmp_path / "backup.json"), "--yes"]) == 0

    def test_clear_needs_word(self) -> None:
        _add()
        assert cli.main(["clear", "--confirm", "nope"]) == 1
        assert cli.main(["clear", "--confirm", "DELETE"]) == 0

    def test_settings_rejects_unknown_interval(self, capsys) -> None:
        assert cli.main(["settings", "--interval", "45"]) == 1
        assert cli.main(["settings", "--auto-refresh", "on", "--interval", "60"]) == 0
        assert "Auto refresh: on, every 60s" in capsys.readouterr().out

    def test_share_needs_base_url(self) -> None:
        assert cli.main(["share"]) == 1
        assert cli.main(["share", "--base-url", "https://example.com/"]) == 0

    def test_owner_profile_cannot_be_removed(self, capsys) -> None:
        cli.main(["profiles"])
        owner_id = capsys.readouterr().out.split()[1]
        assert cli.main(["remove-profile", owner_id]) == 1


class TestCryptoPairs:
    def _exported_names(self, capsys) -> list:
        capsys.readouterr()
        cli.main(["export"])
        out = capsys.readouterr().out
        payload = json.loads(out[out.index("{"):])
        return [tx["symbolName"] for tx in payload["transactions"]]

    def test_pair_defaults_to_usdt(self, capsys) -> None:
        assert cli.main(["add", "--type", "buy", "--asset", "crypto", "--symbol", "btc",
                         "--quantity", "0.1", "--price", "2000000"]) == 0
        assert self._exported_names(capsys) == ["BTCUSDT"]

    def test_explicit_pair_kept(self, capsys) -> None:
        cli.main(["add", "--type", "buy", "--asset", "crypto", "--symbol", "ETH", "--name", "ETHUSDT",
                  "--quantity", "1", "--price", "100000"])
        cli.main(["add", "--type", "buy", "--asset", "crypto", "--symbol", "SOLUSDT",
                  "--quantity", "1", "--price", "5000"])
        assert self._exported_names(capsys) == ["ETHUSDT", "SOLUSDT"]

    def test_stock_name_falls_back_to_symbol(self, capsys) -> None:
        _add()
        assert self._exported_names(capsys) == ["THYAO"]
