"""Unit tests for title, critic and outlet normalization."""

import pytest

from src.etl.normalization import (
    UNKNOWN,
    base_title,
    extract_domain,
    is_known_critic,
    is_known_outlet,
    normalize_critic,
    normalize_outlet,
    normalize_title,
    outlet_display_name,
    outlet_domains,
    outlet_for_domain,
    review_filename,
    review_key,
    show_slug,
    slugify,
)

TITLES = [
    "Sweeney Todd: The Demon Barber of Fleet Street",
    "Hamilton: An American Musical",
    "Les Misérables",
    "Les Mis",
    "The Wiz",
    "Six: The Musical",
    "Moulin Rouge! The Musical",
    "Oklahoma!",
    "Disney's Aladdin",
    "Harry Potter and the Cursed Child (Parts One and Two)",
    "Back to the Future: The Musical",
    "Romeo + Juliet",
    "Merrily We Roll Along",
    "The Great Gatsby",
    "Hadestown on Broadway",
    "Death Becomes Her - A New Musical",
    "",
]


# -------------------------------------------------------------------------
# Slugs
# -------------------------------------------------------------------------


class TestSlugify:
    @staticmethod
    def test_basic() -> None:
        assert slugify("Hello, World & Friends!") == "hello-world-and-friends"

    @staticmethod
    def test_accents_and_apostrophes() -> None:
        assert slugify("Les Misérables") == "les-miserables"
        assert slugify("Disney's Aladdin") == "disneys-aladdin"

    @staticmethod
    def test_blank() -> None:
        assert slugify(None) == ""
        assert slugify("") == ""

    @staticmethod
    def test_show_slug() -> None:
        assert show_slug("The Great Gatsby") == "the-great-gatsby"


# -------------------------------------------------------------------------
# Titles
# -------------------------------------------------------------------------


class TestNormalizeTitle:
    @staticmethod
    def test_subtitle_resolves_to_alias_target() -> None:
        full = normalize_title("Sweeney Todd: The Demon Barber of Fleet Street")
        assert full == "sweeney todd"
        assert full == normalize_title("sweeney todd")

    @staticmethod
    @pytest.mark.parametrize(
        "title,expected",
        [
            ("Hamilton: An American Musical", "hamilton"),
            ("Les Misérables", "les miserables"),
            ("Les Mis", "les miserables"),
            ("The Wiz", "wiz"),
            ("Six: The Musical", "six"),
            ("Moulin Rouge! The Musical", "moulin rouge"),
            ("Oklahoma!", "oklahoma"),
            ("Disney's Aladdin", "aladdin"),
            ("Harry Potter and the Cursed Child (Parts One and Two)", "harry potter and the cursed child"),
            ("Hadestown on Broadway", "hadestown"),
            ("Death Becomes Her - A New Musical", "death becomes her"),
            ("Romeo + Juliet", "romeo juliet"),
            ("Gatsby", "great gatsby"),
        ],
    )
    def test_known_reductions(title: str, expected: str) -> None:
        assert normalize_title(title) == expected

    @staticmethod
    @pytest.mark.parametrize("title", TITLES)
    def test_idempotent(title: str) -> None:
        once = normalize_title(title)
        assert normalize_title(once) == once

    @staticmethod
    def test_blank() -> None:
        assert normalize_title(None) == ""
        assert normalize_title("   ") == ""

    @staticmethod
    def test_base_title_skips_aliases() -> None:
        assert base_title("Les Mis") == "les mis"
        assert normalize_title("Les Mis") == "les miserables"

    @staticmethod
    def test_case_insensitive() -> None:
        assert normalize_title("MERRILY WE ROLL ALONG") == normalize_title("Merrily We Roll Along")


# -------------------------------------------------------------------------
# Critics
# -------------------------------------------------------------------------


class TestNormalizeCritic:
    @staticmethod
    def test_canonical() -> None:
        assert normalize_critic("Jesse Green") == "jesse-green"

    @staticmethod
    def test_case_and_whitespace() -> None:
        assert normalize_critic("  JESSE   green ") == "jesse-green"

    @staticmethod
    def test_initial_with_dot() -> None:
        assert normalize_critic("J. Green") == "jesse-green"

    @staticmethod
    def test_known_typo() -> None:
        assert normalize_critic("Johnny Oleksinki") == "johnny-oleksinski"

    @staticmethod
    def test_unknown_falls_back_to_slug() -> None:
        assert normalize_critic("Margaret Thornbury") == "margaret-thornbury"
        assert is_known_critic("Margaret Thornbury") is False

    @staticmethod
    @pytest.mark.parametrize("name", [None, "", " ", "A"])
    def test_blank_is_unknown(name: str | None) -> None:
        assert normalize_critic(name) == UNKNOWN

    @staticmethod
    def test_is_known() -> None:
        assert is_known_critic("Sara Holdren") is True


# -------------------------------------------------------------------------
# Outlets
# -------------------------------------------------------------------------


class TestExtractDomain:
    @staticmethod
    def test_strips_scheme_and_www() -> None:
        assert extract_domain("https://www.Variety.com/2024/legit/reviews/x") == "variety.com"

    @staticmethod
    def test_bare_domain() -> None:
        assert extract_domain("nytimes.com/2024/04/21/theater") == "nytimes.com"

    @staticmethod
    def test_archive_snapshot() -> None:
        url = "https://web.archive.org/web/20240422000000/https://www.vulture.com/article/x.html"
        assert extract_domain(url) == "vulture.com"

    @staticmethod
    def test_blank() -> None:
        assert extract_domain(None) == ""
        assert extract_domain("") == ""


class TestOutletForDomain:
    @staticmethod
    def test_subdomain_stripped() -> None:
        assert outlet_for_domain("features.nytimes.com") == "nytimes"

    @staticmethod
    def test_unregistered() -> None:
        assert outlet_for_domain("example.org") is None


class TestNormalizeOutlet:
    @staticmethod
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("The New York Times", "nytimes"),
            ("new york times", "nytimes"),
            ("NYT", "nytimes"),
            ("New York Magazine / Vulture", "vulture"),
            ("Hollywood Reporter", "hollywood-reporter"),
            ("https://www.nytimes.com/2024/04/21/theater/cabaret-review.html", "nytimes"),
            ("variety.com", "variety"),
            ("https://web.archive.org/web/2024/https://variety.com/2024/x", "variety"),
        ],
    )
    def test_known(value: str, expected: str) -> None:
        assert normalize_outlet(value) == expected

    @staticmethod
    def test_unknown_url_uses_domain_label() -> None:
        assert normalize_outlet("https://blog.someblog.co.uk/post") == "someblog"

    @staticmethod
    def test_unknown_name_slugged() -> None:
        assert normalize_outlet("Brand New Outlet") == "brand-new-outlet"
        assert is_known_outlet("Brand New Outlet") is False

    @staticmethod
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_is_unknown(value: str | None) -> None:
        assert normalize_outlet(value) == UNKNOWN

    @staticmethod
    def test_is_known() -> None:
        assert is_known_outlet("Variety") is True

    @staticmethod
    def test_display_name_and_domains() -> None:
        assert outlet_display_name("nytimes") == "The New York Times"
        assert outlet_display_name("brand-new-outlet") == "brand-new-outlet"
        assert "variety.com" in outlet_domains("variety")
        assert outlet_domains("brand-new-outlet") == ()


class TestReviewKeys:
    @staticmethod
    def test_review_key() -> None:
        assert review_key("The New York Times", "JESSE GREEN") == "nytimes|jesse-green"

    @staticmethod
    def test_review_filename() -> None:
        assert review_filename("nytimes", "Jesse Green") == "nytimes--jesse-green.json"

    @staticmethod
    def test_review_filename_without_critic() -> None:
        assert review_filename("Associated Press", None) == f"ap--{UNKNOWN}.json"
