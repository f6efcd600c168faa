from __future__ import annotations

import importlib
import json
from pathlib import Path
from typing import Any

import pytest

from ipg.services import ZoneCollectResult

collect_data = importlib.import_module("scripts.collect_data")
migrate_compact = importlib.import_module("scripts.migrate_compact")

pytestmark = pytest.mark.anyio


async def test_parse_args_normalizes_zone_list() -> None:
    args = collect_data._parse_args(
        ["--zones", "Axa, trastevere,", "--dry-run", "--sleep-between-zones-s", "1.5"]
    )

    assert args.zones == ("axa", "trastevere")
    assert args.dry_run is True
    assert args.sleep_between_zones_s == 1.5


async def test_run_without_selection_prints_catalog(
    data_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = await collect_data._run(collect_data.CliArgs(data_dir=data_dir))

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Areas (2):" in output
    assert "  - litorale (2 zones)" in output
    assert "  - trastevere (Trastevere) [centro]" in output


async def test_run_unknown_area_exits_cleanly(
    data_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    exit_code = await collect_data._run(
        collect_data.CliArgs(area="collina", data_dir=data_dir)
    )

    captured = capsys.readouterr()
    assert exit_code == 0
    assert "Unknown area: collina" in captured.err
    assert "litorale, centro" in captured.out


async def test_run_dry_run_makes_no_network_calls(
    monkeypatch: pytest.MonkeyPatch,
    data_dir: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    async def unexpected_total_count(self: object, zone: object) -> int | None:
        raise AssertionError("dry run must not fetch listing counts")

    monkeypatch.setattr(
        collect_data.MobileApiCrawler, "fetch_total_count", unexpected_total_count
    )

    exit_code = await collect_data._run(
        collect_data.CliArgs(area="litorale", dry_run=True, data_dir=data_dir)
    )

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Estimate skipped" in output
    assert output.count("[DRY RUN] Would scrape") == 2
    assert not (data_dir / "listings").exists()


async def test_run_prints_estimate_before_collecting(
    monkeypatch: pytest.MonkeyPatch,
    data_dir: Path,
    capsys: pytest.CaptureFixture[str],
) -> None:
    async def fake_total_count(self: object, zone: object) -> int | None:
        return 40

    async def fake_collect_zone(
        self: object, zone: Any, **_kwargs: object
    ) -> ZoneCollectResult:
        return ZoneCollectResult(zone=zone, status="empty")

    monkeypatch.setattr(
        collect_data.MobileApiCrawler, "fetch_total_count", fake_total_count
    )
    monkeypatch.setattr(
        collect_data.CollectService, "collect_zone", fake_collect_zone
    )

    exit_code = await collect_data._run(
        collect_data.CliArgs(area="litorale", data_dir=data_dir)
    )

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Total listings: ~80" in output
    assert "Pages to fetch: ~4" in output
    assert output.count("No listings found") == 2


async def test_migrate_compact_dry_run(
    data_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = data_dir / "listings/lazio/roma/centro/trastevere/immobiliare.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps(
            {
                "zoneId": "roma-trastevere",
                "scrapedAt": "2026-01-15T08:00:00.000Z",
                "source": "immobiliare",
                "listingCount": 1,
                "listings": [
                    {
                        "id": "immobiliare-9",
                        "sourceId": "9",
                        "title": "Bilocale",
                        "price": 250000,
                        "images": [],
                        "features": {},
                        "url": "https://www.immobiliare.it/annunci/9/",
                    }
                ],
            }
        ),
        encoding="utf-8",
    )

    exit_code = await migrate_compact._async_main(
        ["--dry-run", "--data-dir", str(data_dir)]
    )

    output = capsys.readouterr().out
    assert exit_code == 0
    assert "Files processed: 1" in output
    assert "Run without --dry-run to apply changes." in output
    assert "url" in json.loads(path.read_text(encoding="utf-8"))["listings"][0]
