"""Display and prompt formatting helpers for matched listings."""

import re
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Union

from resource_matcher.domain.models import (
    AcceleratorDetails,
    CoworkingDetails,
    GrantDetails,
    SBADetails,
)

if TYPE_CHECKING:
    from .models import ScoredListing

Number = Union[int, float]

NO_RESOURCES_MESSAGE = "No local resources matched. Provide general guidance."

_SECTION_TITLES: Dict[str, str] = {
    "coworking": "Workspace Options",
    "grant": "Available Grants",
    "accelerator": "Accelerator Programs",
    "sba": "Free SBA Resources",
}


def humanize_cause(tag: str) -> str:
    """Turn a cause tag into display text (``clean_energy`` -> ``clean energy``)."""
    return tag.replace("_", " ")


def humanize_category(category: str) -> str:
    """``business-attorney`` -> ``Business Attorney``."""
    return re.sub(r"[-_]+", " ", category).strip().title()


def city_slug(city: str, state: str) -> str:
    """URL slug for a city page (``San Antonio``, ``TX`` -> ``san-antonio-tx``)."""
    city_part = re.sub(r"\s+", "-", city.strip().lower())
    return f"{city_part}-{state.strip().lower()}"


def _plain(value: Number) -> str:
    """Render a number without a trailing ``.0``."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def format_thousands(amount: Number) -> str:
    """``25000`` -> ``$25K``."""
    return f"${amount / 1000:.0f}K"


def format_money(amount: Number) -> str:
    """Compact dollar amount: ``$500``, ``$25K``, ``$1M``, ``$1.5M``."""
    if amount >= 1_000_000:
        precision = 0 if amount % 1_000_000 == 0 else 1
        return f"${amount / 1_000_000:.{precision}f}M"
    if amount >= 1000:
        return format_thousands(amount)
    return f"${_plain(amount)}"


def format_amount_range(
    amount_min: Optional[Number], amount_max: Optional[Number]
) -> Optional[str]:
    """Grant amount range for display.

    Examples:
        >>> format_amount_range(25000, 50000)
        '$25K - $50K'
        >>> format_amount_range(None, 1500000)
        'Up to $1.5M'
        >>> format_amount_range(500, None)
        'From $500'
    """
    if amount_min and amount_max:
        return f"{format_money(amount_min)} - {format_money(amount_max)}"
    if amount_max:
        return f"Up to {format_money(amount_max)}"
    if amount_min:
        return f"From {format_money(amount_min)}"
    return None


def format_price_range(
    price_min: Optional[Number], price_max: Optional[Number]
) -> Optional[str]:
    """Monthly coworking price range (``$150-$400/mo``)."""
    if price_min and price_max:
        return f"${_plain(price_min)}-${_plain(price_max)}/mo"
    if price_min:
        return f"From ${_plain(price_min)}/mo"
    if price_max:
        return f"Up to ${_plain(price_max)}/mo"
    return None


def _scope(listing) -> str:
    if listing.is_nationwide:
        return "(Nationwide)"
    if listing.is_remote:
        return "(Remote)"
    return f"({listing.city}, {listing.state})"


def _with_website(line: str, website: Optional[str]) -> str:
    return f"{line} - {website}" if website else line


def _coworking_line(listing) -> str:
    details = listing.details
    price = "Price varies"
    rating = ""
    if isinstance(details, CoworkingDetails):
        if details.price_monthly_min:
            price = f"${_plain(details.price_monthly_min)}"
            if details.price_monthly_max:
                price += f"-{_plain(details.price_monthly_max)}"
            price += "/month"
        if details.rating:
            rating = f" ({_plain(details.rating)}★)"
    return _with_website(f"- **{listing.name}**{rating}: {price}", listing.website)


def _grant_line(listing) -> str:
    line = f"- **{listing.name}** {_scope(listing)}"
    details = listing.details
    if isinstance(details, GrantDetails):
        amount = format_amount_range(details.amount_min, details.amount_max)
        if amount:
            line += f": {amount}"
        if details.deadline:
            line += f" - Deadline: {details.deadline}"
    return _with_website(line, listing.website)


def _accelerator_line(listing) -> str:
    line = f"- **{listing.name}** {_scope(listing)}"
    details = listing.details
    if isinstance(details, AcceleratorDetails):
        terms = []
        if details.funding_provided:
            terms.append(f"{format_thousands(details.funding_provided)} funding")
        if details.equity_taken:
            terms.append(f"{_plain(details.equity_taken)}% equity")
        if terms:
            line += f": {', '.join(terms)}"
        if details.next_deadline:
            line += f" - Next deadline: {details.next_deadline}"
    return _with_website(line, listing.website)


def _sba_line(listing) -> str:
    line = f"- **{listing.name}**"
    details = listing.details
    if isinstance(details, SBADetails):
        if details.sba_type:
            line += f" ({details.sba_type})"
        if details.services:
            line += f": {', '.join(details.services[:3])}"
    return _with_website(line, listing.website)


def _generic_line(listing) -> str:
    line = f"- **{listing.name}** {_scope(listing)}"
    if listing.short_description:
        line += f": {listing.short_description}"
    return _with_website(line, listing.website)


_LINE_FORMATTERS = {
    "coworking": _coworking_line,
    "grant": _grant_line,
    "accelerator": _accelerator_line,
    "sba": _sba_line,
}


def format_matches_for_prompt(matches: Mapping[str, List["ScoredListing"]]) -> str:
    """Render ranked matches as a markdown block for AI prompts.

    Sections appear in the order of ``matches``; categories without a
    dedicated layout get a generic one titled after the category.

    Args:
        matches: Category -> ranked ScoredListing list (as produced by the engine)

    Returns:
        Markdown text, or NO_RESOURCES_MESSAGE when nothing matched
    """
    if not any(matches.values()):
        return NO_RESOURCES_MESSAGE

    parts = ["## Matched Local Resources\n"]
    for category, scored in matches.items():
        if not scored:
            continue
        title = _SECTION_TITLES.get(category, humanize_category(category))
        formatter = _LINE_FORMATTERS.get(category, _generic_line)
        lines = [f"### {title}"]
        lines.extend(formatter(item.listing) for item in scored)
        parts.append("\n".join(lines) + "\n")

    return "\n".join(parts)
