"""Shared pytest fixtures for the review dataset tests."""

import json
from pathlib import Path
from typing import Any

import pytest

from src.etl.aggregation.schemas import Review, Show
from src.settings import settings


@pytest.fixture(autouse=True, scope="function")
def mock_env_for_tests(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reproducible environment for settings built inside tests."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("LOG_LEVEL", "INFO")


@pytest.fixture
def tmp_data_dir(tmp_path: Path) -> Path:
    """Temporary dataset directory with the standard layout."""
    data_dir = tmp_path / "data"
    (data_dir / "review-texts").mkdir(parents=True)
    (data_dir / "audit").mkdir()
    (data_dir / "cache").mkdir()
    return data_dir


@pytest.fixture(autouse=True)
def override_settings(
    tmp_data_dir: Path,
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Point every path setting at the temporary dataset."""
    monkeypatch.setattr(settings.paths, "data_dir", tmp_data_dir)
    monkeypatch.setattr(settings.paths, "logs_dir", tmp_path / "logs")


# =============================================================================
# SHOWS
# =============================================================================


@pytest.fixture
def cabaret_dict() -> dict[str, Any]:
    """Raw show record as stored in shows.json."""
    return {
        "id": "cabaret-2024",
        "title": "Cabaret at the Kit Kat Club",
        "slug": "cabaret-2024",
        "venue": "August Wilson Theatre",
        "openingDate": "2024-04-21",
        "previewsStartDate": "2024-04-01",
        "status": "Open",
        "cast": [{"name": "Eddie Redmayne"}, {"name": "Gayle Rankin"}],
        "creativeTeam": [{"name": "Rebecca Frecknall", "role": "Director"}],
    }


@pytest.fixture
def cabaret(cabaret_dict: dict[str, Any]) -> Show:
    return Show.model_validate(cabaret_dict)


@pytest.fixture
def hamilton() -> Show:
    return Show(
        id="hamilton-2015",
        title="Hamilton",
        venue="Richard Rodgers Theatre",
        opening_date="2015-08-06",
        cast=["Lin-Manuel Miranda", "Leslie Odom Jr."],
        creative_team=["Thomas Kail"],
    )


@pytest.fixture
def gatsby() -> Show:
    return Show(
        id="great-gatsby-2024",
        title="The Great Gatsby",
        venue="Broadway Theatre",
        opening_date="2024-04-25",
        previews_start_date="2024-03-29",
        cast=["Jeremy Jordan", "Eva Noblezada"],
        creative_team=["Marc Bruni"],
    )


@pytest.fixture
def catalog(cabaret: Show, hamilton: Show, gatsby: Show) -> list[Show]:
    return [cabaret, hamilton, gatsby]


# =============================================================================
# REVIEWS
# =============================================================================


CABARET_TEXT = (
    "Cabaret at the Kit Kat Club has finally arrived at the August Wilson, "
    "remade as an immersive nightclub. Eddie Redmayne plays the Emcee as a "
    "feral puppet master, and Gayle Rankin's Sally Bowles tears the title song "
    "apart. Rebecca Frecknall's staging, first seen in London, keeps the audience "
    "close enough to feel every chill of 1930s Berlin in this 2024 revival."
)

GATSBY_TEXT = (
    "The Great Gatsby glitters at the Broadway Theatre. Jeremy Jordan sings Jay "
    "Gatsby with a tenor that could light up West Egg, and Eva Noblezada makes "
    "Daisy more than a green light. The Great Gatsby is a spectacle first and a "
    "story second, but the design team makes the parties sparkle. Marc Bruni "
    "directs with an eye for glamour over grief."
)


@pytest.fixture
def cabaret_text() -> str:
    return CABARET_TEXT


@pytest.fixture
def gatsby_text() -> str:
    return GATSBY_TEXT


@pytest.fixture
def review_dict() -> dict[str, Any]:
    """Raw review file content."""
    return {
        "showId": "cabaret-2024",
        "outletId": "nytimes",
        "outlet": "The New York Times",
        "criticName": "Jesse Green",
        "url": "https://www.nytimes.com/2024/04/21/theater/cabaret-review.html",
        "publishDate": "2024-04-21T22:00:00Z",
        "fullText": CABARET_TEXT,
        "dtliExcerpt": "Cabaret is a thrill.",
        "assignedScore": 86,
        "sources": ["dtli", "nyt-direct"],
        "llmMetadata": {"model": "ensemble"},
    }


@pytest.fixture
def review(review_dict: dict[str, Any]) -> Review:
    return Review.model_validate(review_dict)


# =============================================================================
# DATASET ON DISK
# =============================================================================


def _write_json_file(path: Path, data: Any) -> Path:
    """Write JSON test data, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def json_writer():
    """Helper writing JSON test files: json_writer(path, data) -> path."""
    return _write_json_file


@pytest.fixture
def shows_file(tmp_data_dir: Path, cabaret_dict: dict[str, Any]) -> Path:
    """shows.json with Cabaret, Hamilton and The Great Gatsby."""
    shows = [
        cabaret_dict,
        {
            "id": "hamilton-2015",
            "title": "Hamilton",
            "venue": "Richard Rodgers Theatre",
            "openingDate": "2015-08-06",
        },
        {
            "id": "great-gatsby-2024",
            "title": "The Great Gatsby",
            "venue": "Broadway Theatre",
            "openingDate": "2024-04-25",
            "previewsStartDate": "2024-03-29",
            "cast": ["Jeremy Jordan", "Eva Noblezada"],
            "creativeTeam": ["Marc Bruni"],
        },
    ]
    return _write_json_file(tmp_data_dir / "shows.json", {"shows": shows})
