"""
Admin-curated IP allow/block rules.

Evaluation order:
  1. block rules always win;
  2. if at least one whitelist rule exists, the address must match one;
  3. otherwise anything not blocked is allowed.
Addresses that cannot be parsed are allowed only while no whitelist exists.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from models import db
from models.ip_rule import IpRule, RULE_BLOCK, RULE_TYPES, RULE_WHITELIST
from security.ip_range import AddressError, in_range, ip_to_int, parse_ipv4

logger = logging.getLogger(__name__)

NOT_AUTHORIZED = "Access from this address is not authorized"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[str] = None


class InvalidRule(ValueError):
    pass


def _bounds(rule: IpRule):
    start = ip_to_int(rule.start_ip)
    end = ip_to_int(rule.end_ip)
    if start is None or end is None:
        return None
    return start, end


def _matches(number: int, rules) -> bool:
    for rule in rules:
        bounds = _bounds(rule)
        if bounds and in_range(number, *bounds):
            return True
    return False


def evaluate(ip: str) -> AccessDecision:
    rules = IpRule.query.all()
    block_rules = [r for r in rules if r.type == RULE_BLOCK]
    whitelist_rules = [r for r in rules if r.type == RULE_WHITELIST]

    number = ip_to_int(ip)
    if number is None:
        if whitelist_rules:
            return AccessDecision(False, NOT_AUTHORIZED)
        return AccessDecision(True)

    if _matches(number, block_rules):
        return AccessDecision(False, NOT_AUTHORIZED)

    if whitelist_rules and not _matches(number, whitelist_rules):
        return AccessDecision(False, NOT_AUTHORIZED)

    return AccessDecision(True)


def add_rule(rule_type: str, start_ip: str, end_ip: str, description: str = None) -> IpRule:
    if rule_type not in RULE_TYPES:
        raise InvalidRule("type must be 'whitelist' or 'block'")

    try:
        start = parse_ipv4(start_ip)
        end = parse_ipv4(end_ip)
    except AddressError as exc:
        raise InvalidRule(str(exc)) from exc

    if start > end:
        raise InvalidRule("startIp must not be greater than endIp")

    if description is not None and not isinstance(description, str):
        raise InvalidRule("description must be a string")

    rule = IpRule(
        type=rule_type,
        start_ip=start_ip.strip(),
        end_ip=end_ip.strip(),
        description=(description or "").strip()[:255] or None,
    )
    db.session.add(rule)
    db.session.commit()
    logger.info("IP rule %s added: %s %s-%s", rule.id, rule.type, rule.start_ip, rule.end_ip)
    return rule


def delete_rule(rule_id: int) -> bool:
    rule = db.session.get(IpRule, rule_id)
    if not rule:
        return False
    db.session.delete(rule)
    db.session.commit()
    logger.info("IP rule %s deleted", rule_id)
    return True


def list_rules():
    return IpRule.query.order_by(IpRule.created_at.desc(), IpRule.id.desc()).all()


def clear_rules() -> int:
    count = IpRule.query.delete()
    db.session.commit()
    return count
