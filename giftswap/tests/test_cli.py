"""
Tests for the command-line interface.
"""

from ..cli import main
from ..report import CSV_HEADER


def test_simulate_prints_results(capsys):
    assert main(["simulate", "--players", "3", "--seed", "1"]) == 0

    out = capsys.readouterr().out
    assert "Play by play:" in out
    assert "Results:" in out
    assert "Player 3" in out


def test_simulate_csv(capsys):
    assert main(["simulate", "--players", "4", "--gifts", "5", "--seed", "2", "--csv"]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == ",".join(f'"{h}"' for h in CSV_HEADER)
    assert len(lines) == 5


def test_simulate_needs_two_players(capsys):
    assert main(["simulate", "--players", "1"]) == 1
    assert "at least 2 players" in capsys.readouterr().err


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage: giftswap" in capsys.readouterr().out
