from __future__ import annotations

import json

import pytest

from app import cli


def test_normalize_command_prints_json(capsys):
    exit_code = cli.main(["normalize", "15 Avenue Victor Hugo, 69006 Lyon."])

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output == {
        "street": "15 Avenue Victor Hugo",
        "postal_code": "69006",
        "city": "Lyon",
    }


def test_normalize_command_basic_variant(capsys):
    cli.main(["normalize", "--basic", "5 Quai Duperré, 17000 La Rochelle"])

    output = json.loads(capsys.readouterr().out)
    assert output["city"] == "La Rochelle"


def test_street_command(capsys):
    exit_code = cli.main(["street", "8 Boulevard Haussmann 75009 Paris"])

    assert exit_code == 0
    assert capsys.readouterr().out.strip() == "8 Boulevard Haussmann"


def test_lookup_command_requires_existing_input(tmp_path):
    exit_code = cli.main(
        ["lookup", str(tmp_path / "missing.csv"), str(tmp_path / "out.csv")]
    )

    assert exit_code == 1


def test_lookup_command_passes_delay_overrides(tmp_path, monkeypatch):
    input_path = tmp_path / "input.csv"
    input_path.write_text("Nom établissement,Ville\nA,Lyon\n", encoding="utf-8")
    captured = {}

    async def _stub_run_batch(settings, source, destination):
        captured["settings"] = settings
        captured["paths"] = (source, destination)
        return []

    monkeypatch.setattr(cli, "run_batch", _stub_run_batch)

    exit_code = cli.main(
        [
            "lookup",
            str(input_path),
            str(tmp_path / "out.csv"),
            "--delay-min",
            "0",
            "--delay-max",
            "1",
        ]
    )

    assert exit_code == 0
    assert captured["paths"] == (input_path, tmp_path / "out.csv")
    assert captured["settings"].delay_min == 0.0
    assert captured["settings"].delay_max == 1.0


def test_lookup_command_rejects_inverted_delay_range(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(
            [
                "lookup",
                str(tmp_path / "input.csv"),
                str(tmp_path / "out.csv"),
                "--delay-min",
                "10",
                "--delay-max",
                "1",
            ]
        )

    assert excinfo.value.code == 2
    assert "invalid delay range" in capsys.readouterr().err
