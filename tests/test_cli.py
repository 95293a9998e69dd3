"""Tests for the sitedata-enrich command."""

from __future__ import annotations

import json

import pytest

from sitedata.cli import main, parse_args

BOULDER = "123 Solar Way, Boulder, CO 80302"


class TestParseArgs:
    def test_address_only(self) -> None:
        args = parse_args([BOULDER])
        assert args.address == BOULDER
        assert args.lat is None

    def test_lat_requires_lng(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([BOULDER, "--lat", "40.0"])


class TestMain:
    def test_prints_events_as_json_lines(self, capsys) -> None:
        assert main([BOULDER]) == 0
        lines = capsys.readouterr().out.strip().splitlines()
        events = [json.loads(line) for line in lines]
        assert events[0]["type"] == "started"
        assert events[-1]["type"] == "completed"
        assert events[-1]["record"]["owner"] == "Rivera Family Trust"
        assert {e["source"] for e in events if e["type"] == "updated"} == {
            "parcel_records",
            "lot_records",
            "hazard_asce_7_16",
            "hazard_asce_7_22",
            "solar_potential",
        }

    def test_hint_coordinates(self, capsys) -> None:
        assert main(["Unlisted Site", "--lat", "30.49", "--lng", "-84.3"]) == 0
        events = [json.loads(line) for line in capsys.readouterr().out.strip().splitlines()]
        completed = events[-1]
        assert completed["report"]["coordinates"] == {"lat": 30.49, "lng": -84.3}
        assert completed["record"]["wind_speed"] == 118
