"""Steam store page (`/app/<id>/`) scraping."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from bs4 import BeautifulSoup, ParserRejectedMarkup, Tag

from ..errors import ParseError
from ..models import GameRecord, icon_url, store_link
from .parse import epoch_seconds

_RELEASE_DATE_FORMAT = "%d %b, %Y"


def parse_release_date(text: str) -> int:
    """
    Release date text to epoch seconds (UTC).

    Steam shows either a bare year ("2012") or "7 Jun, 2013". Anything else (e.g. "Coming soon",
    "Q3 2025") yields 0 rather than failing the record.
    """
    s = str(text or "").strip()
    try:
        if len(s) == 4:
            return epoch_seconds(datetime(int(s), 1, 1, tzinfo=timezone.utc))
        return epoch_seconds(datetime.strptime(s, _RELEASE_DATE_FORMAT))
    except ValueError:
        return 0


def parse_rating(tooltip: str | None) -> int:
    """
    Percentage of positive reviews from a review summary tooltip.

    "83% of the 1,024 user reviews for this game are positive." -> 83. No tooltip, no "%", or a
    non-numeric prefix -> -1.
    """
    if tooltip is None:
        return -1
    i = tooltip.find("%")
    if i < 0:
        return -1
    try:
        return int(tooltip[:i].strip())
    except ValueError:
        return -1


def _text(el: Tag | None) -> str:
    if el is None:
        return ""
    return el.get_text()


def _label(soup: BeautifulSoup, selector: str, label: str) -> Tag | None:
    for b in soup.select(selector):
        if label in b.get_text():
            return b
    return None


def _features(soup: BeautifulSoup) -> list[str]:
    out: list[str] = []
    for el in soup.select("#category_block .game_area_details_specs"):
        if "learning_about" in (el.get("class") or []):
            continue
        out.append(el.get_text())
    return out


def _genres(soup: BeautifulSoup) -> list[str]:
    label = _label(soup, ".block_content .details_block b", "Genre")
    if label is None:
        return []
    out: list[str] = []
    for sib in label.next_siblings:
        if not isinstance(sib, Tag):
            continue
        if sib.name == "br":
            break
        out.append(sib.get_text())
    return out


def _after_label(soup: BeautifulSoup, label: str) -> str:
    b = _label(soup, "b", label)
    if b is None:
        return ""
    return _text(b.find_next_sibling())


def _rating(soup: BeautifulSoup) -> int:
    rows = soup.select(".user_reviews_summary_row")
    if not rows:
        return -1
    tooltip = rows[-1].get("data-tooltip-html")
    if isinstance(tooltip, list):
        tooltip = " ".join(tooltip)
    return parse_rating(tooltip)


def parse_game_page(app_id: int, body: bytes | str) -> GameRecord:
    """
    Extract a GameRecord from a store page.

    Field-level extraction never fails: missing elements give empty strings/lists, an unknown
    rating gives -1 and an unknown release date gives 0. ParseError is raised only when the
    markup itself is rejected.
    """
    try:
        soup = BeautifulSoup(body, "html.parser")
    except (ParserRejectedMarkup, TypeError) as e:
        raise ParseError(f"Store page for AppId {app_id} is not parseable markup: {e}") from e

    release_text = _text(soup.select_one(".date"))
    release_date = parse_release_date(release_text)
    if release_text and release_date == 0:
        logging.debug(f"[STORE] Unparsed release date for AppId {app_id}: {release_text!r}")

    return GameRecord(
        app_id=int(app_id),
        name=_text(soup.select_one(".apphub_AppName")),
        icon=icon_url(app_id),
        features=_features(soup),
        genres=_genres(soup),
        release_date=release_date,
        developer=_after_label(soup, "Developer"),
        publisher=_after_label(soup, "Publisher"),
        rating=_rating(soup),
        store_link=store_link(app_id),
    )
