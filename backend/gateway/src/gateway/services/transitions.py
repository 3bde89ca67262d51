"""Authoritative subscription status transition table.

Every status mutation path (webhook status changes, merchant manage
actions) consults this table. A pair that is not listed is dropped.
"""

from gateway.models.enums import SubscriptionStatus

S = SubscriptionStatus

ALLOWED_TRANSITIONS: dict[SubscriptionStatus, frozenset[SubscriptionStatus]] = {
    S.INITIALIZED: frozenset({S.BANK_APPROVAL_PENDING, S.CANCELLED}),
    S.BANK_APPROVAL_PENDING: frozenset({S.ACTIVE, S.CANCELLED}),
    S.ACTIVE: frozenset({S.ON_HOLD, S.COMPLETED, S.CUSTOMER_CANCELLED, S.EXPIRED}),
    S.ON_HOLD: frozenset({S.ACTIVE, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.EXPIRED: frozenset(),
    S.CUSTOMER_CANCELLED: frozenset(),
}

TERMINAL_STATUSES = frozenset({S.COMPLETED, S.CANCELLED, S.EXPIRED})


def parse_status(value: str | None) -> SubscriptionStatus | None:
    """Return the enum member for ``value`` or None if it is unknown."""
    if not value:
        return None
    try:
        return SubscriptionStatus(str(value).upper())
    except ValueError:
        return None


def is_allowed(current: str | None, target: SubscriptionStatus) -> bool:
    """Whether ``current -> target`` is permitted.

    A missing current status always permits the first transition. An
    unrecognised stored status permits nothing.
    """
    if not current:
        return True
    source = parse_status(current)
    if source is None:
        return False
    return target in ALLOWED_TRANSITIONS[source]


def allowed_sources(target: SubscriptionStatus) -> list[SubscriptionStatus]:
    """Statuses from which ``target`` may be entered, in table order."""
    return [source for source, targets in ALLOWED_TRANSITIONS.items() if target in targets]


def transition_condition(
    target: SubscriptionStatus,
    attribute: str = "subscription_status",
) -> tuple[str, dict[str, str], dict[str, str]]:
    """Build a DynamoDB condition admitting only legal sources of ``target``.

    Returns:
        (condition_expression, attribute_names, attribute_values)
    """
    names = {"#ss": attribute}
    values = {":empty": ""}
    clauses = ["attribute_not_exists(#ss)", "#ss = :empty"]
    for index, source in enumerate(allowed_sources(target)):
        values[f":from{index}"] = source.value
        clauses.append(f"#ss = :from{index}")
    return " OR ".join(clauses), names, values
