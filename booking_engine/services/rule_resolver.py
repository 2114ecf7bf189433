import logging
from collections.abc import Iterable
from datetime import date

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.errors import NoScheduleDefined
from booking_engine.models.schedule_rule import RuleType, ScheduleRule

logger = logging.getLogger(__name__)


def day_type(d: date) -> RuleType:
    return RuleType.WEEKEND if d.weekday() >= 5 else RuleType.WEEKDAY


def _tiers(service_id: int, d: date) -> list[tuple[RuleType, date | None, int | None]]:
    """(type, date, service_id) keys in precedence order, highest first."""
    weekly = day_type(d)
    return [
        (RuleType.CUSTOM, d, service_id),
        (RuleType.CUSTOM, d, None),
        (weekly, None, service_id),
        (weekly, None, None),
    ]


def _matches(rule: ScheduleRule, rule_type: RuleType, rule_date: date | None, service_id: int | None) -> bool:
    if rule.type != rule_type or rule.service_id != service_id:
        return False
    # weekday/weekend rules match regardless of a stray date
    return rule_type != RuleType.CUSTOM or rule.date == rule_date


def resolve_rule(rules: Iterable[ScheduleRule], service_id: int, d: date) -> ScheduleRule:
    """Pick the single applicable rule for (service, date).

    Raises NoScheduleDefined when no tier matches. If a tier holds more than one
    rule the one with the lowest id wins so the choice stays deterministic.
    """
    rules = list(rules)
    for rule_type, rule_date, rule_service in _tiers(service_id, d):
        matching = [r for r in rules if _matches(r, rule_type, rule_date, rule_service)]
        if not matching:
            continue
        if len(matching) > 1:
            logger.warning(
                "Ambiguous schedule rules %s for service=%s date=%s tier=%s; using lowest id",
                sorted(r.id or 0 for r in matching),
                service_id,
                d.isoformat(),
                rule_type.value,
            )
        return min(matching, key=lambda r: (r.id is None, r.id or 0))
    raise NoScheduleDefined(service_id, d)


async def load_candidate_rules(session: AsyncSession, service_id: int, d: date) -> list[ScheduleRule]:
    """Fetch every rule that could apply to (service, date); resolve_rule picks one."""
    result = await session.execute(
        select(ScheduleRule)
        .where(
            or_(
                and_(ScheduleRule.type == RuleType.CUSTOM, ScheduleRule.date == d),
                ScheduleRule.type == day_type(d),
            ),
            or_(ScheduleRule.service_id == service_id, ScheduleRule.service_id.is_(None)),
        )
        .order_by(ScheduleRule.id)
    )
    return list(result.scalars().all())


async def resolve_rule_for(session: AsyncSession, service_id: int, d: date) -> ScheduleRule:
    rules = await load_candidate_rules(session, service_id, d)
    return resolve_rule(rules, service_id, d)
