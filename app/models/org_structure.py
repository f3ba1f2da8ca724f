"""
Organization structure types — company, departments, sub-departments.

These are in-memory domain types, not database tables.  The tree is
built from compiled-in defaults (``app/org_defaults.py``) and refined
by override records fetched from the hosted ``org_metadata`` table.

All node types are frozen dataclasses with tuple sequences so that
merge functions can treat a tree as an immutable snapshot and return
a new one with ``dataclasses.replace()``.

JSON keys (``to_dict`` / ``from_dict``) match the keys used inside the
override ``content`` blob, e.g. ``fullName``, ``vfp``, ``mainStat``.
"""

from dataclasses import dataclass, field
from typing import Any

COMPANY_ID = "owner"
ADMIN_DEPARTMENT_ID = "dept7"

KIND_COMPANY = "company"
KIND_DEPARTMENT = "department"
KIND_SUBDEPARTMENT = "subdepartment"
OVERRIDE_KINDS = (KIND_COMPANY, KIND_DEPARTMENT, KIND_SUBDEPARTMENT)


class _Absent:
    """Marker for an override field the administrator never set."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = _Absent()


def is_present(value: Any) -> bool:
    """True when an override field was explicitly set (even to "")."""
    return value is not ABSENT


# =========================================================================
# Tree nodes
# =========================================================================


@dataclass(frozen=True)
class Company:
    """The company root.  There is exactly one, with id ``owner``."""

    id: str = COMPANY_ID
    goal: str | None = None
    vfp: str | None = None
    manager: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "goal": self.goal,
            "vfp": self.vfp,
            "manager": self.manager,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Company":
        if not isinstance(data, dict):
            raise ValueError("'company' must be an object")
        return cls(
            id=COMPANY_ID,
            goal=data.get("goal"),
            vfp=data.get("vfp"),
            manager=_text(data.get("manager")),
        )


@dataclass(frozen=True)
class SubDepartment:
    """
    A division inside a department (e.g. ``dept7_19``, code ``7.19``).

    ``sections`` maps a section key to a dict of arbitrary fields; a
    section may carry its own ``mainStat``.
    """

    id: str
    name: str = ""
    code: str = ""
    manager: str = ""
    description: str = ""
    long_description: str = ""
    vfp: str = ""
    goal: str = ""
    employee_name: str = ""
    main_stat: str = ""
    tasks: tuple[str, ...] = ()
    tools: tuple[str, ...] = ()
    processes: tuple[str, ...] = ()
    responsibilities: tuple[str, ...] = ()
    key_indicators: tuple[str, ...] = ()
    trouble_signs: tuple[str, ...] = ()
    development_actions: tuple[str, ...] = ()
    sections: dict[str, dict[str, Any]] = field(default_factory=dict)
    content: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "manager": self.manager,
            "description": self.description,
            "longDescription": self.long_description,
            "vfp": self.vfp,
            "goal": self.goal,
            "employeeName": self.employee_name,
            "mainStat": self.main_stat,
            "tasks": list(self.tasks),
            "tools": list(self.tools),
            "processes": list(self.processes),
            "responsibilities": list(self.responsibilities),
            "keyIndicators": list(self.key_indicators),
            "troubleSigns": list(self.trouble_signs),
            "developmentActions": list(self.development_actions),
            "sections": {key: dict(value) for key, value in self.sections.items()},
            "content": dict(self.content),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubDepartment":
        return cls(
            id=_text(data.get("id")),
            name=_text(data.get("name")),
            code=_text(data.get("code")),
            manager=_text(data.get("manager")),
            description=_text(data.get("description")),
            long_description=_text(data.get("longDescription")),
            vfp=_text(data.get("vfp")),
            goal=_text(data.get("goal")),
            employee_name=_text(data.get("employeeName")),
            main_stat=_text(data.get("mainStat")),
            tasks=_strings(data.get("tasks")),
            tools=_strings(data.get("tools")),
            processes=_strings(data.get("processes")),
            responsibilities=_strings(data.get("responsibilities")),
            key_indicators=_strings(data.get("keyIndicators")),
            trouble_signs=_strings(data.get("troubleSigns")),
            development_actions=_strings(data.get("developmentActions")),
            sections=_sections(data.get("sections")),
            content=dict(data.get("content") or {}),
        )


@dataclass(frozen=True)
class Department:
    """
    A top-level department.  ``departments`` holds its sub-departments
    keyed by sub-department id.
    """

    id: str
    name: str = ""
    full_name: str = ""
    color: str = ""
    icon: str = ""
    description: str = ""
    long_description: str = ""
    manager: str = ""
    goal: str = ""
    vfp: str = ""
    main_stat: str = ""
    functions: tuple[str, ...] = ()
    trouble_signs: tuple[str, ...] = ()
    development_actions: tuple[str, ...] = ()
    tools: tuple[str, ...] = ()
    processes: tuple[str, ...] = ()
    key_indicators: tuple[str, ...] = ()
    connections: tuple[str, ...] = ()
    content: dict[str, Any] = field(default_factory=dict)
    departments: dict[str, SubDepartment] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "fullName": self.full_name,
            "color": self.color,
            "icon": self.icon,
            "description": self.description,
            "longDescription": self.long_description,
            "manager": self.manager,
            "goal": self.goal,
            "vfp": self.vfp,
            "mainStat": self.main_stat,
            "functions": list(self.functions),
            "troubleSigns": list(self.trouble_signs),
            "developmentActions": list(self.development_actions),
            "tools": list(self.tools),
            "processes": list(self.processes),
            "keyIndicators": list(self.key_indicators),
            "connections": list(self.connections),
            "content": dict(self.content),
            "departments": {
                sub_id: sub.to_dict() for sub_id, sub in self.departments.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Department":
        subs = data.get("departments") or {}
        if not isinstance(subs, dict):
            raise ValueError("'departments' must be an object keyed by id")
        return cls(
            id=_text(data.get("id")),
            name=_text(data.get("name")),
            full_name=_text(data.get("fullName")),
            color=_text(data.get("color")),
            icon=_text(data.get("icon")),
            description=_text(data.get("description")),
            long_description=_text(data.get("longDescription")),
            manager=_text(data.get("manager")),
            goal=_text(data.get("goal")),
            vfp=_text(data.get("vfp")),
            main_stat=_text(data.get("mainStat")),
            functions=_strings(data.get("functions")),
            trouble_signs=_strings(data.get("troubleSigns")),
            development_actions=_strings(data.get("developmentActions")),
            tools=_strings(data.get("tools")),
            processes=_strings(data.get("processes")),
            key_indicators=_strings(data.get("keyIndicators")),
            connections=_strings(data.get("connections")),
            content=dict(data.get("content") or {}),
            departments={
                sub_id: SubDepartment.from_dict({"id": sub_id, **sub_data})
                for sub_id, sub_data in subs.items()
            },
        )


@dataclass(frozen=True)
class OrgTree:
    """The whole organization: the company root plus its departments."""

    company: Company = field(default_factory=Company)
    departments: dict[str, Department] = field(default_factory=dict)

    def find_subdepartment(
        self, sub_id: str
    ) -> tuple[Department, SubDepartment] | None:
        """Return ``(parent, sub)`` for a sub-department id, or None."""
        for dept in self.departments.values():
            sub = dept.departments.get(sub_id)
            if sub is not None:
                return dept, sub
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "company": self.company.to_dict(),
            "departments": {
                dept_id: dept.to_dict() for dept_id, dept in self.departments.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OrgTree":
        company = data.get("company") or {}
        if not isinstance(company, dict):
            raise ValueError("'company' must be an object")
        departments = data.get("departments") or {}
        if not isinstance(departments, dict):
            raise ValueError("'departments' must be an object keyed by id")
        return cls(
            company=Company.from_dict(company),
            departments={
                dept_id: Department.from_dict({"id": dept_id, **dept_data})
                for dept_id, dept_data in departments.items()
            },
        )


# =========================================================================
# Override records
# =========================================================================


@dataclass(frozen=True)
class OverrideRecord:
    """
    One row of the ``org_metadata`` table: an administrator's patch to
    a default node, keyed by ``(kind, node_id)``.

    Top-level columns are tri-state: ``ABSENT`` (never set), ``""``
    (explicitly cleared) or a value.  ``content`` carries the richer
    optional fields using the JSON keys of ``to_dict()``.
    """

    kind: str
    node_id: str
    goal: Any = ABSENT
    vfp: Any = ABSENT
    manager: Any = ABSENT
    description: Any = ABSENT
    long_description: Any = ABSENT
    content: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "OverrideRecord":
        """
        Parse a wire row.  A missing key or JSON ``null`` column is
        ``ABSENT``; a non-dict ``content`` is treated as empty.
        """
        content = row.get("content")
        return cls(
            kind=str(row.get("type") or row.get("kind") or ""),
            node_id=str(row.get("node_id") or ""),
            goal=_column(row, "goal"),
            vfp=_column(row, "vfp"),
            manager=_column(row, "manager"),
            description=_column(row, "description"),
            long_description=_column(row, "long_description"),
            content=content if isinstance(content, dict) else {},
        )

    def to_row(self) -> dict[str, Any]:
        """Serialize to the wire shape used for upserts."""
        row: dict[str, Any] = {"type": self.kind, "node_id": self.node_id}
        for column in ("goal", "vfp", "manager", "description", "long_description"):
            value = getattr(self, column)
            row[column] = value if is_present(value) else None
        row["content"] = dict(self.content)
        return row


# =========================================================================
# Internal helpers
# =========================================================================


def _column(row: dict[str, Any], key: str) -> Any:
    value = row.get(key, ABSENT)
    if value is None or value is ABSENT:
        return ABSENT
    return str(value)


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _strings(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"Expected a list of strings, got {type(value).__name__}")
    return tuple(str(item) for item in value)


def _sections(value: Any) -> dict[str, dict[str, Any]]:
    if not value:
        return {}
    if not isinstance(value, dict):
        raise ValueError("'sections' must be an object keyed by section name")
    return {
        str(key): dict(section) if isinstance(section, dict) else {}
        for key, section in value.items()
    }
