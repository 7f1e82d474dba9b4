"""Index name derivation."""

from datetime import UTC, datetime


def index_name(
    index: str | None = None,
    prefix: str = "logs",
    date_format: str = "%Y.%m.%d",
    now: datetime | None = None,
) -> str:
    """Return the fixed index, or ``<prefix>-<formatted date>`` when none is set.

    Args:
        index: Fixed index name; wins when set.
        prefix: Prefix of the dated index name.
        date_format: strftime pattern of the date suffix.
        now: Reference time; defaults to the current UTC time.

    Returns:
        str: The target index name.
    """
    if index:
        return index
    moment = now or datetime.now(UTC)
    return f"{prefix}-{moment.strftime(date_format)}"
