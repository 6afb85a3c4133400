"""
Tests for the interactive CLI, driven against the test API.
"""

import pytest

from jobtrack.client.api_client import JobTrackerClient
from jobtrack.client.board import JobBoard
from jobtrack.examples.cli_demo import handle_command, render_table


@pytest.fixture
def board(client):
    return JobBoard(JobTrackerClient(base_url="", session=client))


@pytest.fixture
def output():
    lines = []
    return lines


def run(board, output, line, confirm=lambda prompt: True):
    return handle_command(board, line, confirm=confirm, out=output.append)


def test_add_list_filter_delete(board, output):
    run(board, output, "register erin@example.com pw Erin")
    run(board, output, "draft position 'Platform Engineer'")
    run(board, output, "draft company Initech")
    run(board, output, "draft appliedDate 2024-06-01")
    run(board, output, "add")
    assert output[-1] == "Added Platform Engineer @ Initech"

    run(board, output, "list")
    assert "Initech" in output[-1]
    assert "Active" in output[-1]

    run(board, output, "edit 1 status Inactive")
    assert "Inactive" in output[-1]

    run(board, output, "filter company globex")
    assert "No jobs found" in output[-1]
    run(board, output, "clear")

    run(board, output, "delete 1", confirm=lambda prompt: False)
    assert output[-1] == "Cancelled."
    assert len(board.jobs) == 1

    run(board, output, "delete 1")
    assert output[-1] == "Deleted."
    assert board.jobs == []


def test_add_with_missing_fields_prints_errors(board, output):
    run(board, output, "register frank@example.com pw")
    run(board, output, "draft company Initech")
    run(board, output, "add")

    assert "! Position is required" in output
    assert "! Applied Date is required" in output
    assert "! Position is required" in render_table(board)


def test_requests_without_login_report_error(board, output):
    run(board, output, "draft position SWE")
    run(board, output, "draft company Acme")
    run(board, output, "draft appliedDate 2024-01-01")
    run(board, output, "add")

    assert output[-2].startswith("Error:")
    assert output[-1] == "Session expired. Please log in again."


def test_bad_input_does_not_crash(board, output):
    assert run(board, output, "edit 7 note hi") is True
    assert output[-1].startswith("Invalid command")

    run(board, output, "frobnicate")
    assert output[-1] == "Unknown command: frobnicate"


def test_quit(board, output):
    assert run(board, output, "quit") is False
    assert run(board, output, "") is True
