import json
import os
import subprocess
import sys
from pathlib import Path

from msa_property_sync.scheduler.cli import main
from msa_property_sync.settings import reset_settings_cache


SRC = Path(__file__).resolve().parents[1] / "src"


def _clear_provider_env(monkeypatch, db):
    monkeypatch.delenv("SFR_API_KEY", raising=False)
    monkeypatch.delenv("SFR_API_URL", raising=False)
    monkeypatch.setenv("MSA_SYNC_DB_PATH", db)
    reset_settings_cache()


def test_sync_without_credentials_reports_each_market(tmp_path, monkeypatch, capsys):
    _clear_provider_env(monkeypatch, str(tmp_path / "sync.sqlite"))
    try:
        code = main(["sync", "--city", "SD", "--city", "den", "--as-of", "2026-01-05"])
    finally:
        reset_settings_cache()

    out = json.loads(capsys.readouterr().out)
    assert code == 2
    assert out["ok"] is False
    assert out["as_of"] == "2026-01-05"
    assert [m["city_code"] for m in out["markets"]] == ["SD", "DEN"]
    assert all("not configured" in m["error"] for m in out["markets"])


def test_unknown_city(tmp_path, monkeypatch, capsys):
    _clear_provider_env(monkeypatch, str(tmp_path / "sync.sqlite"))
    try:
        code = main(["sync", "--city", "XX"])
    finally:
        reset_settings_cache()
    out = json.loads(capsys.readouterr().out)
    assert code == 2
    assert "XX" in out["error"]


def test_status_on_fresh_db(tmp_path, capsys):
    code = main(["status", "--db", str(tmp_path / "sync.sqlite")])
    assert code == 0
    assert json.loads(capsys.readouterr().out) == {"ok": True, "states": []}


def test_markets_command_as_module():
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(p for p in [str(SRC), env.get("PYTHONPATH", "")] if p)
    cmd = [sys.executable, "-m", "msa_property_sync", "--log-json", "markets"]
    proc = subprocess.run(cmd, capture_output=True, text=True, check=False, env=env)
    assert proc.returncode == 0, proc.stderr
    payload = json.loads(proc.stdout)
    codes = [m["city_code"] for m in payload["markets"]]
    assert codes == ["SD", "LA", "DEN", "SF"]
    la = next(m for m in payload["markets"] if m["city_code"] == "LA")
    assert la["exclusions"] == ["11011 Huston St"]
