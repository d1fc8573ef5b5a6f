"""Tests for the batch driver command line interface."""

import json
from pathlib import Path
from typing import Any

import pytest

from src.etl.aggregation.aggregator import AUDIT_REPORT_FILENAME
from src.etl.pipeline.cli import EXIT_FAILURE, EXIT_OK, build_parser, main
from src.etl.utils.logger import reset_loggers
from src.etl.utils.url_cache import DEFAULT_CACHE_FILENAME


@pytest.fixture(autouse=True)
def fresh_loggers():
    """Handlers point at the temporary log directory of each test."""
    reset_loggers()
    yield
    reset_loggers()


def _write(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _read(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def wrong_review(gatsby_text: str) -> dict[str, Any]:
    """Cabaret review file holding a review of The Great Gatsby."""
    return {
        "outlet": "Variety",
        "criticName": "Frank Scheck",
        "url": "https://variety.com/2023/legit/reviews/cabaret-review",
        "publishDate": "2023-01-01",
        "fullText": gatsby_text,
    }


# =============================================================================
# PARSER
# =============================================================================


class TestParser:
    @staticmethod
    def test_audit_options() -> None:
        args = build_parser().parse_args(
            ["audit", "--show", "cabaret-2024", "--fix", "--max-mismatch-rate", "0.5"]
        )
        assert args.command == "audit"
        assert args.show == "cabaret-2024"
        assert args.fix is True
        assert args.verbose is False
        assert args.max_mismatch_rate == pytest.approx(0.5)

    @staticmethod
    def test_check_shows_path() -> None:
        args = build_parser().parse_args(["check-shows", "new-shows.json"])
        assert args.candidates == Path("new-shows.json")

    @staticmethod
    def test_no_command(capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == EXIT_FAILURE
        assert "audit" in capsys.readouterr().out


# =============================================================================
# AUDIT
# =============================================================================


@pytest.mark.usefixtures("shows_file")
class TestAuditCommand:
    @staticmethod
    def test_clean_run(
        tmp_data_dir: Path, review_dict: dict[str, Any], capsys: pytest.CaptureFixture[str]
    ) -> None:
        _write(tmp_data_dir / "review-texts" / "cabaret-2024" / "nytimes--jesse-green.json", review_dict)

        assert main(["audit"]) == EXIT_OK

        out = capsys.readouterr().out
        assert "Review audit" in out
        assert "Texts verified:       1" in out
        assert (tmp_data_dir / "audit" / AUDIT_REPORT_FILENAME).exists()
        assert (tmp_data_dir / "cache" / DEFAULT_CACHE_FILENAME).exists()

    @staticmethod
    def test_mismatch_fails(
        tmp_data_dir: Path, wrong_review: dict[str, Any], capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = _write(tmp_data_dir / "review-texts" / "cabaret-2024" / "variety--frank-scheck.json", wrong_review)

        assert main(["audit", "--verbose"]) == EXIT_FAILURE

        captured = capsys.readouterr()
        assert "Audit failed" in captured.err
        assert "[content_mismatch] cabaret-2024/variety--frank-scheck.json" in captured.out
        assert _read(path)["fullText"] == wrong_review["fullText"]

    @staticmethod
    def test_raised_threshold_passes(tmp_data_dir: Path, wrong_review: dict[str, Any]) -> None:
        _write(tmp_data_dir / "review-texts" / "cabaret-2024" / "variety--frank-scheck.json", wrong_review)
        assert main(["audit", "--max-mismatch-rate", "1.0"]) == EXIT_OK

    @staticmethod
    def test_fix_quarantines(tmp_data_dir: Path, wrong_review: dict[str, Any]) -> None:
        path = _write(tmp_data_dir / "review-texts" / "cabaret-2024" / "variety--frank-scheck.json", wrong_review)

        main(["audit", "--fix"])

        saved = _read(path)
        assert saved["fullText"] is None
        assert saved["wrongFullText"] == wrong_review["fullText"]

    @staticmethod
    def test_show_filter_by_slug(
        tmp_data_dir: Path, wrong_review: dict[str, Any], review_dict: dict[str, Any]
    ) -> None:
        _write(tmp_data_dir / "review-texts" / "cabaret-2024" / "variety--frank-scheck.json", wrong_review)
        hamilton_review = {
            **review_dict,
            "showId": "hamilton-2015",
            "criticName": "Ben Brantley",
            "url": "https://www.nytimes.com/2015/08/07/theater/review-hamilton.html",
            "publishDate": "2015-08-06",
            "fullText": None,
        }
        _write(tmp_data_dir / "review-texts" / "hamilton-2015" / "nytimes--ben-brantley.json", hamilton_review)

        assert main(["audit", "--show", "hamilton"]) == EXIT_OK


# =============================================================================
# BUZZ
# =============================================================================


@pytest.fixture
def buzz_file(tmp_data_dir: Path) -> Path:
    return _write(
        tmp_data_dir / "audience-buzz.json",
        {
            "_meta": {"lastUpdated": "2024-01-01"},
            "shows": {
                "cabaret-2024": {
                    "title": "Cabaret",
                    "sources": {
                        "showScore": {"score": 80, "reviewCount": 10},
                        "mezzanine": {"score": 90, "reviewCount": 5},
                        "reddit": {"score": 70},
                    },
                },
                "hamilton-2015": {"title": "Hamilton", "sources": {}},
            },
        },
    )


class TestBuzzCommand:
    @staticmethod
    def test_updates_file(buzz_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["buzz"]) == EXIT_OK

        assert "Updated 1 of 2 shows (1 without data)" in capsys.readouterr().out
        cabaret = _read(buzz_file)["shows"]["cabaret-2024"]
        assert cabaret["combinedScore"] == 81
        assert cabaret["designation"] == "Liking"

    @staticmethod
    def test_dry_run_leaves_file(buzz_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        before = buzz_file.read_text(encoding="utf-8")

        assert main(["buzz", "--dry-run"]) == EXIT_OK

        assert "[dry run]" in capsys.readouterr().out
        assert buzz_file.read_text(encoding="utf-8") == before

    @staticmethod
    def test_invalid_entry_does_not_abort(tmp_data_dir: Path) -> None:
        path = _write(
            tmp_data_dir / "audience-buzz.json",
            {
                "shows": {
                    "cabaret-2024": {"sources": {"reddit": {"score": 70}}},
                    "hamilton-2015": {"combinedScore": 91, "sources": {"reddit": {"score": 105}}},
                }
            },
        )

        assert main(["buzz"]) == EXIT_OK

        shows = _read(path)["shows"]
        assert shows["cabaret-2024"]["combinedScore"] == 70
        assert shows["hamilton-2015"]["combinedScore"] == 91

    @staticmethod
    def test_missing_file() -> None:
        assert main(["buzz"]) == EXIT_FAILURE


# =============================================================================
# CHECK-SHOWS
# =============================================================================


@pytest.mark.usefixtures("shows_file")
class TestCheckShowsCommand:
    @staticmethod
    def test_reports_duplicates(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        candidates = _write(
            tmp_path / "candidates.json",
            [
                {"id": "hamilton", "title": "Hamilton"},
                {"id": "hadestown-2019", "slug": "hadestown-2019", "title": "Hadestown"},
                {"id": "hadestown-bway", "slug": "hadestown-bway", "title": "Hadestown"},
            ],
        )

        assert main(["check-shows", str(candidates)]) == EXIT_OK

        lines = capsys.readouterr().out.splitlines()
        assert lines[0].startswith("DUPLICATE hamilton -> hamilton-2015 (")
        assert lines[1] == "NEW       hadestown-2019"
        assert lines[2].startswith("DUPLICATE hadestown-bway -> hadestown-2019 (")
        assert lines[-1] == "2 of 3 candidates are duplicates"

    @staticmethod
    def test_missing_candidates_file(tmp_path: Path) -> None:
        assert main(["check-shows", str(tmp_path / "missing.json")]) == EXIT_FAILURE
