"""
Role-code matching: one place for the organisation's loose code spellings.

Directory role codes are free text maintained by administrators: ``SE``,
``SE_WE&M``, ``CE_WAT``, ``IAO-II``, ``sub-engineer``, ``XEN_NORTH`` ...
Every workflow rule that looks at a role goes through the helpers here so
the matching semantics stay identical across the state machine, the
signature checker and the permission view.

Usage:
    from efiling.services.role_codes import RoleCode, role_matches

    RoleCode.parse("se")             # -> RoleCode.SE
    RoleCode.parse("SE_WE&M")        # -> RoleCode.UNKNOWN (not an exact code)
    role_matches("CE_WAT", "CE")     # -> True  (prefix segment)
    role_matches("CEO", "CE")        # -> False
"""

from __future__ import annotations

from enum import Enum


class RoleCode(str, Enum):
    """Known directory role codes.  Anything else parses to UNKNOWN."""

    SE = "SE"
    CE = "CE"
    DCE = "DCE"
    CFO = "CFO"
    COO = "COO"
    CEO = "CEO"
    IAO_II = "IAO-II"
    ADLFA = "ADLFA"
    AEE = "AEE"
    DAO = "DAO"
    AO = "AO"
    RE = "RE"
    XEN = "XEN"
    UNKNOWN = ""

    @classmethod
    def parse(cls, code: str | None) -> "RoleCode":
        normalized = normalize_role_code(code)
        for member in cls:
            if member is not cls.UNKNOWN and member.value == normalized:
                return member
        return cls.UNKNOWN


# Senior approval roles; marking to or from them needs an e-signature.
EXTERNAL_TIER = frozenset({RoleCode.SE, RoleCode.CE, RoleCode.CFO, RoleCode.COO, RoleCode.CEO})

# Roles allowed to add pages to a file they currently hold.
PAGE_ADDER_CODES = (
    RoleCode.SE, RoleCode.CE, RoleCode.DCE, RoleCode.IAO_II, RoleCode.ADLFA,
)

# A creator whose file came back from one of these may only add pages.
RETURNING_AUTHORITY_CODES = frozenset({RoleCode.SE, RoleCode.CE, RoleCode.CEO, RoleCode.COO})

_HIGHER_AUTHORITY_EXACT = frozenset({
    RoleCode.SE, RoleCode.CE, RoleCode.DCE, RoleCode.CEO,
    RoleCode.COO, RoleCode.ADLFA, RoleCode.IAO_II,
})
_HIGHER_AUTHORITY_PREFIXES = ("SE_", "CE_", "DCE_", "CEO_", "COO_")

_TEAM_MEMBER_MARKERS = (
    "AEE", "DAO", "AO", "ACCOUNT",
    "SUB-ENGINEER", "SUB_ENGINEER", "SUBENGINEER",
)

_BUDGET_BILLING_MARKERS = ("BUDGET", "BILLING")


def normalize_role_code(code: str | None) -> str:
    """Upper-case and trim a role code; ``None`` becomes ``""``."""
    return (code or "").strip().upper()


def role_matches(code: str | None, pattern: str | RoleCode) -> bool:
    """Return True if ``code`` is ``pattern`` or carries it as an underscore-bounded segment.

    Matches exact, ``PATTERN_...`` prefix, ``..._PATTERN`` suffix and
    ``..._PATTERN_...`` infix.  ``CE`` therefore matches ``CE_WAT`` and
    ``ZONE_CE`` but not ``CEO`` or ``DCE``.
    """
    normalized = normalize_role_code(code)
    p = pattern.value if isinstance(pattern, RoleCode) else normalize_role_code(pattern)
    if not normalized or not p:
        return False
    return (
        normalized == p
        or normalized.startswith(p + "_")
        or normalized.endswith("_" + p)
        or ("_" + p + "_") in normalized
    )


def _contains_any(value: str, markers) -> bool:
    return any(marker in value for marker in markers)


# ── Rule predicates ──────────────────────────────────────────────────────────


def is_team_member_role(code: str | None) -> bool:
    """AEE, DAO, AO / account officer or sub-engineer, in any spelling."""
    return _contains_any(normalize_role_code(code), _TEAM_MEMBER_MARKERS)


def is_external_tier(code: str | None) -> bool:
    return RoleCode.parse(code) in EXTERNAL_TIER


def is_re_or_xen(code: str | None) -> bool:
    """Resident engineer or executive engineer."""
    c = normalize_role_code(code)
    return (
        c in ("RE", "XEN")
        or c.startswith(("RE_", "XEN_"))
        or "RESIDENT_ENGINEER" in c
        or "EXECUTIVE_ENGINEER" in c
    )


def is_superintendent_engineer(code: str | None) -> bool:
    c = normalize_role_code(code)
    return (
        c == "SE"
        or c.startswith("SE_")
        or "SUPERINTENDENT_ENGINEER" in c
        or "SUPERINTENDENT ENGINEER" in c
    )


def is_admin_officer(code: str | None) -> bool:
    c = normalize_role_code(code)
    return (
        "ADMINISTRATIVE_OFFICER" in c
        or "ADMINISTRATIVE OFFICER" in c
        or c == "ADMIN_OFFICER"
        or c.startswith("ADMIN_OFFICER_")
    )


def is_director_medical_services(code: str | None) -> bool:
    return "DIRECTOR_MEDICAL_SERVICES" in normalize_role_code(code)


def is_budget_or_billing(code: str | None, department_name: str | None = None) -> bool:
    """Budget / billing staff, recognised by role code or department name."""
    return (
        _contains_any(normalize_role_code(code), _BUDGET_BILLING_MARKERS)
        or _contains_any(normalize_role_code(department_name), _BUDGET_BILLING_MARKERS)
    )


def can_add_pages_role(code: str | None) -> bool:
    return any(role_matches(code, allowed) for allowed in PAGE_ADDER_CODES)


def is_higher_authority(code: str | None, department_name: str | None = None) -> bool:
    """SE/CE/DCE/CEO/COO/ADLFA/IAO-II (and their suffixed variants) or budget/billing."""
    c = normalize_role_code(code)
    return (
        RoleCode.parse(c) in _HIGHER_AUTHORITY_EXACT
        or "IAO-II" in c
        or c.startswith(_HIGHER_AUTHORITY_PREFIXES)
        or is_budget_or_billing(c, department_name)
    )


def is_returning_authority(code: str | None) -> bool:
    return RoleCode.parse(code) in RETURNING_AUTHORITY_CODES
