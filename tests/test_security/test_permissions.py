"""
Tests for the moderation permission checks.

Lookups go through the in-memory FakeDirectory from conftest.
"""
from __future__ import annotations

import pytest

from conftest import make_actor
from wishlist.security.permissions import (
    ModerationDecision,
    can_assign_admin_level,
    can_assign_department,
    can_manage_user,
    can_moderate,
    can_see_admin_actions,
    check_admin_permissions,
    check_content_permissions,
    resolve_department_domain,
    resolve_owner_scope,
)
from wishlist.security.scope import UNRESOLVED_OWNER, AdminLevel, OwnerScope

TARGETS = [
    None,
    OwnerScope(domain="acme.com", department_id="dept-1"),
    OwnerScope(domain="other.com", department_id="dept-2"),
    UNRESOLVED_OWNER,
]


@pytest.mark.parametrize("target", TARGETS)
@pytest.mark.parametrize("scope", [None, "acme.com", "dept-1", "site"])
def test_user_level_is_never_allowed(target, scope):
    decision = can_moderate(make_actor("USER", scope), target)
    assert decision == ModerationDecision(allowed=False, level=AdminLevel.USER)


@pytest.mark.parametrize("target", TARGETS)
def test_site_level_is_always_allowed(target):
    decision = can_moderate(make_actor("SITE"), target)
    assert decision == ModerationDecision(allowed=True, level=AdminLevel.SITE, scope="site")


def test_unknown_level_is_treated_as_user():
    decision = can_moderate(make_actor("ROOT", "acme.com"), OwnerScope(domain="acme.com", department_id=None))
    assert decision == ModerationDecision(allowed=False, level=AdminLevel.USER)


def test_missing_actor_is_denied():
    assert can_moderate(None) == ModerationDecision(allowed=False, level=AdminLevel.USER)


@pytest.mark.parametrize(
    "owner_domain, allowed",
    [("acme.com", True), ("other.com", False), (None, False), ("ACME.COM", False)],
)
def test_domain_admin_matches_owner_domain(owner_domain, allowed):
    actor = make_actor("DOMAIN", "acme.com")
    decision = can_moderate(actor, OwnerScope(domain=owner_domain, department_id="dept-1"))
    assert decision.allowed is allowed
    assert decision.level is AdminLevel.DOMAIN
    assert decision.scope == "acme.com"


@pytest.mark.parametrize(
    "owner_department, allowed",
    [("dept-1", True), ("dept-2", False), (None, False)],
)
def test_department_admin_matches_owner_department(owner_department, allowed):
    actor = make_actor("DEPARTMENT", "dept-1")
    decision = can_moderate(actor, OwnerScope(domain="acme.com", department_id=owner_department))
    assert decision.allowed is allowed


def test_department_admin_is_not_matched_by_domain():
    # Same domain, different department: strict department comparison.
    actor = make_actor("DEPARTMENT", "dept-1", domain="acme.com")
    assert not can_moderate(actor, OwnerScope(domain="acme.com", department_id="dept-2")).allowed


@pytest.mark.parametrize("level", ["DOMAIN", "DEPARTMENT"])
@pytest.mark.parametrize("scope", [None, ""])
def test_scoped_admin_without_scope_is_denied(level, scope):
    actor = make_actor(level, scope)
    assert not can_moderate(actor, OwnerScope(domain=None, department_id=None)).allowed
    assert not can_moderate(actor, OwnerScope(domain="acme.com", department_id="dept-1")).allowed


def test_no_target_reports_admin_capability():
    assert can_moderate(make_actor("DOMAIN", "acme.com")) == ModerationDecision(
        allowed=True, level=AdminLevel.DOMAIN, scope="acme.com"
    )
    assert can_moderate(make_actor("DEPARTMENT", "dept-1")).allowed


def test_scenario_domain_admin_same_domain():
    actor = make_actor("DOMAIN", "eng.example.com")
    decision = can_moderate(actor, OwnerScope(domain="eng.example.com", department_id=None))
    assert decision.to_dict() == {"allowed": True, "level": "DOMAIN", "scope": "eng.example.com"}


def test_scenario_domain_admin_other_domain():
    actor = make_actor("DOMAIN", "eng.example.com")
    decision = can_moderate(actor, OwnerScope(domain="mkt.example.com", department_id=None))
    assert decision.to_dict() == {"allowed": False, "level": "DOMAIN", "scope": "eng.example.com"}


def test_scenario_site_admin_any_target():
    decision = can_moderate(make_actor("SITE"), OwnerScope(domain="anything", department_id="x"))
    assert decision.to_dict() == {"allowed": True, "level": "SITE", "scope": "site"}


def test_decision_is_repeatable():
    actor = make_actor("DEPARTMENT", "dept-1")
    target = OwnerScope(domain="acme.com", department_id="dept-1")
    assert can_moderate(actor, target) == can_moderate(actor, target)


def test_can_see_admin_actions():
    assert not can_see_admin_actions(AdminLevel.USER)
    assert not can_see_admin_actions(None)
    assert can_see_admin_actions(AdminLevel.DEPARTMENT)
    assert can_see_admin_actions(AdminLevel.DOMAIN)
    assert can_see_admin_actions(AdminLevel.SITE)


# ---- Lookups ---------------------------------------------------------------------------


def test_resolve_owner_scope(directory):
    assert resolve_owner_scope(directory, "mkt") == OwnerScope(domain="company.com", department_id="dept-mkt")
    assert resolve_owner_scope(directory, "missing") == UNRESOLVED_OWNER
    assert resolve_owner_scope(directory, None) == UNRESOLVED_OWNER


def test_resolve_department_domain(directory):
    assert resolve_department_domain(directory, "dept-sales") == "other.com"
    assert resolve_department_domain(directory, "dept-unknown") is None
    assert resolve_department_domain(directory, None) is None


def test_check_admin_permissions_unknown_actor(directory):
    assert check_admin_permissions(directory, "ghost", "eng") == ModerationDecision(allowed=False, level=AdminLevel.USER)


def test_check_admin_permissions_domain_admin(directory):
    assert check_admin_permissions(directory, "domain", "mkt").allowed
    assert not check_admin_permissions(directory, "domain", "ext").allowed
    assert not check_admin_permissions(directory, "domain", "missing").allowed


def test_check_admin_permissions_department_admin(directory):
    assert check_admin_permissions(directory, "dept", "eng").allowed
    assert not check_admin_permissions(directory, "dept", "mkt").allowed


def test_check_admin_permissions_site_skips_target_lookup(directory):
    assert check_admin_permissions(directory, "site", "missing").allowed
    assert ("user", "missing") not in directory.lookups


def test_check_admin_permissions_without_target(directory):
    assert check_admin_permissions(directory, "dept") == ModerationDecision(
        allowed=True, level=AdminLevel.DEPARTMENT, scope="dept-eng"
    )
    assert not check_admin_permissions(directory, "eng").allowed


def test_check_content_permissions(directory):
    domain_admin = directory.users["domain"]
    assert check_content_permissions(directory, domain_admin, "k-mkt").allowed
    assert not check_content_permissions(directory, domain_admin, "k-ext").allowed
    assert not check_content_permissions(directory, domain_admin, "k-missing").allowed
    assert not check_content_permissions(directory, domain_admin, "k-orphan").allowed
    assert check_content_permissions(directory, directory.users["site"], "k-missing").allowed
    assert not check_content_permissions(directory, directory.users["eng"], "k-eng").allowed


# ---- Admin level assignment ------------------------------------------------------------


def test_site_admin_can_assign_any_scoped_level(directory):
    site = directory.users["site"]
    assert can_assign_admin_level(directory, site, "ext", AdminLevel.DOMAIN, "other.com")
    assert can_assign_admin_level(directory, site, "ext", AdminLevel.DEPARTMENT, "dept-sales")
    assert can_assign_admin_level(directory, site, "ext", AdminLevel.USER, None)


def test_site_level_is_never_assignable(directory):
    assert not can_assign_admin_level(directory, directory.users["site"], "eng", AdminLevel.SITE, None)


def test_scope_is_required_for_scoped_levels(directory):
    site = directory.users["site"]
    assert not can_assign_admin_level(directory, site, "eng", AdminLevel.DOMAIN, None)
    assert not can_assign_admin_level(directory, site, "eng", AdminLevel.DEPARTMENT, " ")


def test_department_admin_cannot_grant_domain(directory):
    dept = directory.users["dept"]
    assert not can_assign_admin_level(directory, dept, "eng", AdminLevel.DOMAIN, "company.com")
    assert can_assign_admin_level(directory, dept, "eng", AdminLevel.DEPARTMENT, "dept-eng")
    assert not can_assign_admin_level(directory, dept, "eng", AdminLevel.DEPARTMENT, "dept-mkt")


def test_domain_admin_grants_stay_inside_domain(directory):
    domain = directory.users["domain"]
    assert can_assign_admin_level(directory, domain, "mkt", AdminLevel.DEPARTMENT, "dept-mkt")
    assert can_assign_admin_level(directory, domain, "mkt", AdminLevel.DOMAIN, "company.com")
    assert not can_assign_admin_level(directory, domain, "mkt", AdminLevel.DOMAIN, "other.com")
    assert not can_assign_admin_level(directory, domain, "mkt", AdminLevel.DEPARTMENT, "dept-sales")
    assert not can_assign_admin_level(directory, domain, "mkt", AdminLevel.DEPARTMENT, "dept-unknown")


def test_assignment_requires_target_in_scope(directory):
    domain = directory.users["domain"]
    assert not can_assign_admin_level(directory, domain, "ext", AdminLevel.USER, None)
    assert not can_assign_admin_level(directory, domain, "missing", AdminLevel.USER, None)


def test_cannot_change_own_level(directory):
    assert not can_assign_admin_level(directory, directory.users["domain"], "domain", AdminLevel.USER, None)


def test_regular_user_cannot_assign(directory):
    assert not can_assign_admin_level(directory, directory.users["eng"], "mkt", AdminLevel.USER, None)
    assert not can_assign_admin_level(directory, None, "mkt", AdminLevel.USER, None)


# ---- Admin level ceiling ---------------------------------------------------------------

LEVELS = [AdminLevel.USER, AdminLevel.DEPARTMENT, AdminLevel.DOMAIN, AdminLevel.SITE]
AUTHORITY_OVER_ENG = {
    AdminLevel.USER: None,
    AdminLevel.DEPARTMENT: "dept-eng",
    AdminLevel.DOMAIN: "company.com",
    AdminLevel.SITE: None,
}


def _colleagues(directory, actor_level, target_level):
    """Actor and target in the same department, so only the levels differ."""
    actor = directory.add_user(
        "actor", actor_level.value, AUTHORITY_OVER_ENG[actor_level], "company.com", "dept-eng"
    )
    directory.add_user("target", target_level.value, AUTHORITY_OVER_ENG[target_level], "company.com", "dept-eng")
    return actor


def _outranks(actor_level, target_level):
    if actor_level is AdminLevel.USER:
        return False
    return actor_level is AdminLevel.SITE or actor_level.rank > target_level.rank


@pytest.mark.parametrize("target_level", LEVELS)
@pytest.mark.parametrize("actor_level", LEVELS)
def test_manage_user_requires_higher_level(directory, actor_level, target_level):
    actor = _colleagues(directory, actor_level, target_level)
    assert can_manage_user(directory, actor, "target") is _outranks(actor_level, target_level)


@pytest.mark.parametrize("target_level", LEVELS)
@pytest.mark.parametrize("actor_level", LEVELS)
def test_demotion_requires_higher_level(directory, actor_level, target_level):
    actor = _colleagues(directory, actor_level, target_level)
    allowed = can_assign_admin_level(directory, actor, "target", AdminLevel.USER, None)
    assert allowed is _outranks(actor_level, target_level)


def test_department_admin_cannot_touch_own_superiors(directory):
    dept = directory.users["dept"]
    assert not can_manage_user(directory, dept, "site")
    assert not can_manage_user(directory, dept, "domain")
    assert not can_assign_admin_level(directory, dept, "domain", AdminLevel.USER, None)


def test_domain_admin_cannot_touch_site_admin_in_domain(directory):
    directory.add_user("site-in-domain", "SITE", None, "company.com", "dept-eng")
    domain = directory.users["domain"]
    assert not can_manage_user(directory, domain, "site-in-domain")
    assert can_manage_user(directory, domain, "dept")


def test_site_admin_manages_other_site_admins(directory):
    directory.add_user("site-2", "SITE")
    assert can_manage_user(directory, directory.users["site"], "site-2")
    assert not can_manage_user(directory, directory.users["site"], "site")


def test_manage_missing_user_is_denied(directory):
    assert not can_manage_user(directory, directory.users["site"], "missing")


# ---- Department assignment -------------------------------------------------------------


def test_domain_admin_moves_user_within_domain(directory):
    domain = directory.users["domain"]
    assert can_assign_department(directory, domain, "eng", "dept-mkt")
    assert not can_assign_department(directory, domain, "eng", "dept-sales")
    assert not can_assign_department(directory, domain, "eng", "dept-unknown")
    assert can_assign_department(directory, domain, "eng", None)


def test_department_admin_moves_only_into_own_department(directory):
    dept = directory.users["dept"]
    directory.add_user("new-hire", domain="company.com", department_id="dept-eng")
    assert can_assign_department(directory, dept, "new-hire", "dept-eng")
    assert not can_assign_department(directory, dept, "new-hire", "dept-mkt")
    assert not can_assign_department(directory, dept, "mkt", "dept-eng")


def test_department_assignment_respects_ceiling(directory):
    assert not can_assign_department(directory, directory.users["dept"], "domain", "dept-eng")
