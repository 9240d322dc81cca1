"""Tests for the command line interface."""

import argparse
import datetime as dt
from unittest.mock import AsyncMock, patch

import pytest

from salsa_finder.__main__ import build_parser, run_command
from salsa_finder.models.messages import ExistenceVoteCounts, VenueVoteCounts


class TestParser:
    """Test argument parsing."""

    def test_discover(self):
        args = build_parser().parse_args(
            ["discover", "--city", "Berlin", "--date", "2025-07-10", "--styles", "Bachata,Salsa"]
        )
        assert args.command == "discover"
        assert args.date == dt.date(2025, 7, 10)
        assert args.styles == "Bachata,Salsa"

    def test_invalid_date(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["discover", "--city", "Berlin", "--date", "10.07.2025"])

    def test_vote(self):
        args = build_parser().parse_args(
            ["vote", "--event-id", "3", "--type", "indoor", "--user-id", "u1", "--venue"]
        )
        assert (args.event_id, args.type, args.user_id, args.venue) == (3, "indoor", "u1", True)

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestRunCommand:
    """Test run_command wiring."""

    @pytest.mark.asyncio
    async def test_init_db(self, config):
        with patch("salsa_finder.__main__.DatabaseManager") as manager_cls, \
                patch("salsa_finder.__main__.initialize_schema", new=AsyncMock()) as init_schema:
            manager = manager_cls.return_value
            manager.initialize = AsyncMock()
            manager.cleanup = AsyncMock()

            result = await run_command(argparse.Namespace(command="init-db"), config)

        assert result == {"status": "ok"}
        init_schema.assert_awaited_once_with(manager)
        manager.cleanup.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_venue_vote(self, config):
        with patch("salsa_finder.__main__.DatabaseManager") as manager_cls, \
                patch("salsa_finder.__main__.VoteService") as service_cls:
            manager_cls.return_value.initialize = AsyncMock()
            manager_cls.return_value.cleanup = AsyncMock()
            service_cls.return_value.cast_venue_vote = AsyncMock(return_value=VenueVoteCounts(indoor=1))
            service_cls.return_value.cast_existence_vote = AsyncMock(return_value=ExistenceVoteCounts())

            args = argparse.Namespace(command="vote", event_id=3, type="indoor", user_id="u1", venue=True)
            result = await run_command(args, config)

        assert result == {"indoor": 1, "outdoor": 0, "weekIndoor": 0, "weekOutdoor": 0}
        service_cls.return_value.cast_venue_vote.assert_awaited_once_with(3, "indoor", "u1")
        service_cls.return_value.cast_existence_vote.assert_not_called()

    @pytest.mark.asyncio
    async def test_cleanup_on_failure(self, config):
        with patch("salsa_finder.__main__.DatabaseManager") as manager_cls, \
                patch("salsa_finder.__main__.initialize_schema", new=AsyncMock(side_effect=RuntimeError("boom"))):
            manager_cls.return_value.initialize = AsyncMock()
            manager_cls.return_value.cleanup = AsyncMock()

            with pytest.raises(RuntimeError):
                await run_command(argparse.Namespace(command="init-db"), config)

        manager_cls.return_value.cleanup.assert_awaited_once()
