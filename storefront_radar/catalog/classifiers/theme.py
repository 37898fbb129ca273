"""
Theme detector.

Looks for a known theme name in, in order: the storefront's meta payload,
the inline ``Shopify.theme`` object, theme asset paths, class/id/data-theme
attributes and Liquid comments. Names match as whole tokens only, so
"supply" does not fire on "supplyroom".
"""
import json
import logging
import re
from typing import Dict, List, Optional, Pattern, Tuple

from storefront_radar.core.data_types import StorefrontPage, ThemeMatch
from storefront_radar.core.models import ThemeTier
from storefront_radar.core.utils import title_case

logger = logging.getLogger(__name__)

FREE_THEMES = (
    "dawn", "refresh", "sense", "craft", "studio", "taste", "origin",
    "debut", "brooklyn", "minimal", "supply", "venture", "simple",
)

PAID_THEMES = (
    "impulse", "motion", "prestige", "empire", "expanse", "warehouse",
    "enterprise", "symmetry", "modular", "palo alto", "loft", "blockshop",
    "flow", "avenue", "broadcast", "pipeline", "envy", "streamline",
    "fashionopolism", "district", "venue", "editorial", "focal", "chronicle", "galleria",
)

THEME_TIERS: Dict[str, ThemeTier] = {
    **{name: ThemeTier.FREE for name in FREE_THEMES},
    **{name: ThemeTier.PAID for name in PAID_THEMES},
}

SHOPIFY_THEME_RE = re.compile(r"Shopify\.theme\s*=\s*({.*?})\s*;?", re.IGNORECASE | re.DOTALL)
THEME_NAME_RE = re.compile(r"[\"']?name[\"']?\s*:\s*[\"']([^\"']+)[\"']", re.IGNORECASE)
THEME_PATH_RE = re.compile(r"/themes/([^/\"'?#]+)/", re.IGNORECASE)
LIQUID_COMMENT_RE = re.compile(r"{%-?\s*comment\s*-?%}(.*?){%-?\s*endcomment\s*-?%}", re.IGNORECASE | re.DOTALL)


def _token_pattern(name: str) -> Pattern[str]:
    body = r"[\s_-]+".join(re.escape(part) for part in name.split())
    return re.compile(rf"(?<![a-z0-9]){body}(?![a-z0-9])")


THEME_PATTERNS: List[Tuple[str, Pattern[str]]] = [(name, _token_pattern(name)) for name in THEME_TIERS]


def match_theme_name(text: Optional[str]) -> Optional[str]:
    """Known theme name appearing as a whole token in ``text``."""
    if not text:
        return None
    lowered = text.lower()
    for name, pattern in THEME_PATTERNS:
        if pattern.search(lowered):
            return name
    return None


def _from_meta(page: StorefrontPage) -> Optional[str]:
    theme = (page.meta or {}).get("theme")
    if isinstance(theme, dict):
        return match_theme_name(str(theme.get("name") or ""))
    if isinstance(theme, str):
        return match_theme_name(theme)
    return None


def _from_script_object(page: StorefrontPage) -> Optional[str]:
    for script in page.soup.find_all("script"):
        body = script.string or ""
        match = SHOPIFY_THEME_RE.search(body)
        if not match:
            continue
        raw = match.group(1)
        try:
            data = json.loads(raw)
            name = data.get("name") if isinstance(data, dict) else None
        except ValueError:
            found = THEME_NAME_RE.search(raw)
            name = found.group(1) if found else None
        theme = match_theme_name(name)
        if theme:
            return theme
    return None


def _from_asset_paths(page: StorefrontPage) -> Optional[str]:
    soup = page.soup
    sources = [tag.get("href") for tag in soup.find_all("link")]
    sources += [tag.get("src") for tag in soup.find_all("script")]
    for src in sources:
        if not src:
            continue
        for segment in THEME_PATH_RE.findall(src):
            theme = match_theme_name(segment)
            if theme:
                return theme
    return None


def _from_attributes(page: StorefrontPage) -> Optional[str]:
    for tag in page.soup.find_all(True):
        # class/id values only count when they name a theme explicitly ("theme-dawn")
        values = [value for value in (tag.get("class") or []) if "theme" in value.lower()]
        if tag.get("id") and "theme" in tag["id"].lower():
            values.append(tag["id"])
        for attr in ("data-theme", "data-theme-name"):
            if tag.get(attr):
                values.append(tag[attr])
        for value in values:
            theme = match_theme_name(value)
            if theme:
                return theme
    return None


def _from_liquid_comments(page: StorefrontPage) -> Optional[str]:
    for comment in LIQUID_COMMENT_RE.findall(page.html):
        if "theme" in comment.lower():
            theme = match_theme_name(comment.lower().replace("theme", " "))
            if theme:
                return theme
    return None


METHODS = (
    ("meta", _from_meta),
    ("script", _from_script_object),
    ("asset_path", _from_asset_paths),
    ("attribute", _from_attributes),
    ("liquid_comment", _from_liquid_comments),
)


def detect_theme(page: StorefrontPage) -> Optional[ThemeMatch]:
    for method, fn in METHODS:
        name = fn(page)
        if name:
            logger.debug(f"{page.url}: theme {name} via {method}")
            return ThemeMatch(name=title_case(name), tier=THEME_TIERS[name], method=method)
    return None
