"""
Org merge service — reconcile the default org tree with override records.

The tree shown to users is the compiled-in default tree
(``app/org_defaults.py``) refined by administrator overrides from the
hosted ``org_metadata`` table.  This module is the single place where
override precedence is decided, and where an edited tree is turned
back into override records for persistence.

Field precedence rules:
  - **manager / employeeName:** an explicitly present value wins, even
    an empty string (the administrator cleared it).  Absent keeps the
    existing value.
  - **description / longDescription / goal / vfp:** a non-empty
    top-level column (trimmed) wins, then a non-empty ``content``
    value, then the existing value.  An empty column never clears.
  - **list fields:** replaced wholesale when ``content`` supplies a
    list; anything else keeps the existing value.
  - **sections:** key union; on a shared key the override's fields
    win one by one.

The company record is the exception: its ``goal`` and ``vfp`` are taken
from the record as-is, so a record that omits them drops the values.

All functions are pure: they never mutate the trees or records they
are given.
"""

import logging
from dataclasses import replace
from typing import Any, Iterable

from app.models.org_structure import (
    ABSENT,
    ADMIN_DEPARTMENT_ID,
    COMPANY_ID,
    KIND_COMPANY,
    KIND_DEPARTMENT,
    KIND_SUBDEPARTMENT,
    Company,
    Department,
    OrgTree,
    OverrideRecord,
    SubDepartment,
    is_present,
)
from app.org_defaults import default_tree

logger = logging.getLogger(__name__)

# content key -> attribute name, for fields taken from ``content`` when
# they are non-empty strings.
_DEPARTMENT_CONTENT_TEXT = {
    "name": "name",
    "fullName": "full_name",
    "color": "color",
    "icon": "icon",
    "mainStat": "main_stat",
}
_SUBDEPARTMENT_CONTENT_TEXT = {
    "name": "name",
    "code": "code",
    "mainStat": "main_stat",
}

# content key -> attribute name, for list fields replaced wholesale.
_DEPARTMENT_SEQUENCES = {
    "functions": "functions",
    "troubleSigns": "trouble_signs",
    "developmentActions": "development_actions",
    "tools": "tools",
    "processes": "processes",
    "keyIndicators": "key_indicators",
    "connections": "connections",
}
_SUBDEPARTMENT_SEQUENCES = {
    "tasks": "tasks",
    "tools": "tools",
    "processes": "processes",
    "responsibilities": "responsibilities",
    "keyIndicators": "key_indicators",
    "troubleSigns": "trouble_signs",
    "developmentActions": "development_actions",
}

# Scalars with a top-level column: content key -> (column, attribute).
_COLUMN_TEXT = {
    "description": ("description", "description"),
    "longDescription": ("long_description", "long_description"),
    "goal": ("goal", "goal"),
    "vfp": ("vfp", "vfp"),
}

_DEPARTMENT_KNOWN_KEYS = (
    {"id", "departments", "manager"}
    | set(_DEPARTMENT_CONTENT_TEXT)
    | set(_DEPARTMENT_SEQUENCES)
    | set(_COLUMN_TEXT)
)
_SUBDEPARTMENT_KNOWN_KEYS = (
    {"id", "manager", "employeeName", "sections"}
    | set(_SUBDEPARTMENT_CONTENT_TEXT)
    | set(_SUBDEPARTMENT_SEQUENCES)
    | set(_COLUMN_TEXT)
)


# =========================================================================
# Public API
# =========================================================================


def build_initial_tree(defaults: OrgTree | None = None) -> OrgTree:
    """
    Return the bootstrap tree shown before any overrides arrive.

    Args:
        defaults: The compiled-in tree.  Defaults to ``default_tree()``.

    Returns:
        The defaults, with the administrative department guaranteed.
    """
    if defaults is None:
        defaults = default_tree()
    return ensure_admin_department(defaults)


def merge_overrides(
    base_tree: OrgTree,
    records: Iterable[OverrideRecord | dict[str, Any]],
) -> OrgTree:
    """
    Apply override records to a tree in a single left-to-right pass.

    Later records for the same ``(kind, node_id)`` overwrite fields set
    by earlier ones.  Records of an unknown kind, or for a node the
    tree does not contain, are skipped.  Departments and
    sub-departments are never removed.

    Args:
        base_tree: The tree to refine (usually ``build_initial_tree()``).
        records:   ``OverrideRecord`` instances or raw wire rows.

    Returns:
        A new tree; ``base_tree`` is left untouched.
    """
    company = base_tree.company
    departments = dict(base_tree.departments)
    applied = 0

    for raw in records:
        record = raw if isinstance(raw, OverrideRecord) else OverrideRecord.from_row(raw)

        if record.kind == KIND_COMPANY:
            company = _merge_company(company, record)
            applied += 1

        elif record.kind == KIND_DEPARTMENT:
            existing = departments.get(record.node_id)
            if existing is None:
                logger.warning(
                    "Department %s not found in the default structure — skipping",
                    record.node_id,
                )
                continue
            departments[record.node_id] = _merge_department(existing, record)
            applied += 1

        elif record.kind == KIND_SUBDEPARTMENT:
            # Records carry no parent id, so search every department.
            parent = _find_parent(departments, record.node_id)
            if parent is None:
                logger.warning(
                    "Sub-department %s not found in any department — skipping",
                    record.node_id,
                )
                continue
            subs = dict(parent.departments)
            subs[record.node_id] = _merge_subdepartment(subs[record.node_id], record)
            departments[parent.id] = replace(parent, departments=subs)
            applied += 1

        else:
            logger.debug(
                "Ignoring override record %s with unknown kind %r",
                record.node_id,
                record.kind,
            )

    logger.debug("Applied %d override record(s)", applied)
    return ensure_admin_department(OrgTree(company=company, departments=departments))


def apply_edit(
    tree: OrgTree,
    update: Company | Department | SubDepartment,
) -> tuple[OrgTree, list[OverrideRecord]]:
    """
    Replace one node's editable fields and re-serialize the whole tree.

    The editor always submits a complete replacement of the node it
    edits.  A department edit keeps the department's existing
    sub-departments; those are edited one at a time.

    Args:
        tree:   The current tree.
        update: Full replacement for the company, a department, or a
                sub-department (matched by ``id``).

    Returns:
        ``(new_tree, records)`` where ``records`` holds one override
        record for the company, each department and each sub-department.

    Raises:
        ValueError: If the department or sub-department does not exist.
        TypeError:  If ``update`` is not a tree node.
    """
    if isinstance(update, Company):
        new_tree = replace(tree, company=replace(update, id=COMPANY_ID))

    elif isinstance(update, Department):
        existing = tree.departments.get(update.id)
        if existing is None:
            raise ValueError(f"Department {update.id} not found.")
        departments = dict(tree.departments)
        departments[update.id] = replace(update, departments=existing.departments)
        new_tree = replace(tree, departments=departments)

    elif isinstance(update, SubDepartment):
        parent = _find_parent(tree.departments, update.id)
        if parent is None:
            raise ValueError(f"Sub-department {update.id} not found.")
        subs = dict(parent.departments)
        subs[update.id] = update
        departments = dict(tree.departments)
        departments[parent.id] = replace(parent, departments=subs)
        new_tree = replace(tree, departments=departments)

    else:
        raise TypeError(f"Cannot apply an edit of type {type(update).__name__}")

    new_tree = ensure_admin_department(new_tree)
    return new_tree, serialize_tree(new_tree)


def serialize_tree(tree: OrgTree) -> list[OverrideRecord]:
    """
    Convert a whole tree into override records for persistence.

    ``manager`` and ``employeeName`` are always written, even when
    empty, so that a cleared value survives the next merge.  Other
    empty scalars are left out of the top-level columns.

    Returns:
        Company record first, then each department followed by its
        sub-departments.
    """
    company = tree.company
    records = [
        OverrideRecord(
            kind=KIND_COMPANY,
            node_id=COMPANY_ID,
            goal=company.goal if company.goal is not None else ABSENT,
            vfp=company.vfp if company.vfp is not None else ABSENT,
            manager=company.manager,
            content={
                "goal": company.goal,
                "vfp": company.vfp,
                "manager": company.manager,
            },
        )
    ]

    for dept_id, dept in tree.departments.items():
        content = dict(dept.content)
        content.update(
            {
                "name": dept.name,
                "fullName": dept.full_name,
                "color": dept.color,
                "icon": dept.icon,
                "description": dept.description,
                "longDescription": dept.long_description,
                "vfp": dept.vfp,
                "goal": dept.goal,
                "manager": dept.manager,
                "mainStat": dept.main_stat,
            }
        )
        for key, attr in _DEPARTMENT_SEQUENCES.items():
            content[key] = list(getattr(dept, attr))
        records.append(
            OverrideRecord(
                kind=KIND_DEPARTMENT,
                node_id=dept_id,
                manager=dept.manager,
                content=content,
                **_column_values(dept),
            )
        )

        for sub_id, sub in dept.departments.items():
            sub_content = dict(sub.content)
            sub_content.update(
                {
                    "name": sub.name,
                    "code": sub.code,
                    "description": sub.description,
                    "longDescription": sub.long_description,
                    "vfp": sub.vfp,
                    "goal": sub.goal,
                    "manager": sub.manager,
                    "employeeName": sub.employee_name,
                    "mainStat": sub.main_stat,
                    "sections": {
                        key: dict(section) for key, section in sub.sections.items()
                    },
                }
            )
            for key, attr in _SUBDEPARTMENT_SEQUENCES.items():
                sub_content[key] = list(getattr(sub, attr))
            records.append(
                OverrideRecord(
                    kind=KIND_SUBDEPARTMENT,
                    node_id=sub_id,
                    manager=sub.manager,
                    content=sub_content,
                    **_column_values(sub),
                )
            )

    return records


def ensure_admin_department(tree: OrgTree) -> OrgTree:
    """
    Guarantee the administrative department (``dept7``) is present.

    If it is missing, it is restored from the compiled-in default and
    placed first.
    """
    if ADMIN_DEPARTMENT_ID in tree.departments:
        return tree
    logger.warning(
        "%s missing from the org structure, restoring the default",
        ADMIN_DEPARTMENT_ID,
    )
    restored = default_tree().departments[ADMIN_DEPARTMENT_ID]
    return replace(
        tree,
        departments={ADMIN_DEPARTMENT_ID: restored, **tree.departments},
    )


# =========================================================================
# Per-kind merge rules
# =========================================================================


def _merge_company(company: Company, record: OverrideRecord) -> Company:
    """Company goal/vfp come straight from the record, even when absent."""
    return replace(
        company,
        goal=record.goal if is_present(record.goal) else None,
        vfp=record.vfp if is_present(record.vfp) else None,
        manager=_explicit_text(record.manager, ABSENT, company.manager),
    )


def _merge_department(dept: Department, record: OverrideRecord) -> Department:
    content = record.content
    changes: dict[str, Any] = {}

    for key, (column, attr) in _COLUMN_TEXT.items():
        changes[attr] = _preferred_text(
            getattr(record, column), content.get(key), getattr(dept, attr)
        )
    changes["manager"] = _explicit_text(
        record.manager, content.get("manager", ABSENT), dept.manager
    )
    for key, attr in _DEPARTMENT_CONTENT_TEXT.items():
        changes[attr] = _preferred_text(ABSENT, content.get(key), getattr(dept, attr))
    for key, attr in _DEPARTMENT_SEQUENCES.items():
        changes[attr] = _replaced_sequence(content.get(key), getattr(dept, attr))

    changes["content"] = _merge_extras(dept.content, content, _DEPARTMENT_KNOWN_KEYS)
    return replace(dept, **changes)


def _merge_subdepartment(sub: SubDepartment, record: OverrideRecord) -> SubDepartment:
    content = record.content
    changes: dict[str, Any] = {}

    for key, (column, attr) in _COLUMN_TEXT.items():
        changes[attr] = _preferred_text(
            getattr(record, column), content.get(key), getattr(sub, attr)
        )
    changes["manager"] = _explicit_text(
        record.manager, content.get("manager", ABSENT), sub.manager
    )
    # There is no employee_name column; only content can carry it.
    changes["employee_name"] = _explicit_text(
        ABSENT, content.get("employeeName", ABSENT), sub.employee_name
    )
    for key, attr in _SUBDEPARTMENT_CONTENT_TEXT.items():
        changes[attr] = _preferred_text(ABSENT, content.get(key), getattr(sub, attr))
    for key, attr in _SUBDEPARTMENT_SEQUENCES.items():
        changes[attr] = _replaced_sequence(content.get(key), getattr(sub, attr))

    changes["sections"] = _merge_sections(sub.sections, content.get("sections"))
    changes["content"] = _merge_extras(sub.content, content, _SUBDEPARTMENT_KNOWN_KEYS)
    return replace(sub, **changes)


# =========================================================================
# Field helpers
# =========================================================================


def _preferred_text(column: Any, content_value: Any, existing: str) -> str:
    """Non-empty column (trimmed), then non-empty content, then existing."""
    if is_present(column) and isinstance(column, str) and column.strip():
        return column.strip()
    if isinstance(content_value, str) and content_value:
        return content_value
    return existing


def _explicit_text(column: Any, content_value: Any, existing: str) -> str:
    """Any explicitly present value wins, including an empty string."""
    if is_present(column) and isinstance(column, str):
        return column.strip()
    if is_present(content_value) and isinstance(content_value, str):
        return content_value.strip()
    return existing


def _replaced_sequence(value: Any, existing: tuple[str, ...]) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(item) for item in value)
    return existing


def _merge_sections(
    existing: dict[str, dict[str, Any]],
    override: Any,
) -> dict[str, dict[str, Any]]:
    merged = {key: dict(section) for key, section in existing.items()}
    if not isinstance(override, dict):
        return merged
    for key, section in override.items():
        if not isinstance(section, dict):
            continue
        merged[key] = {**merged.get(key, {}), **section}
    return merged


def _merge_extras(
    existing: dict[str, Any],
    content: dict[str, Any],
    known_keys: set[str],
) -> dict[str, Any]:
    """Keep content keys that have no dedicated field on the node."""
    extras = {key: value for key, value in content.items() if key not in known_keys}
    return {**existing, **extras}


def _column_values(node: Department | SubDepartment) -> dict[str, Any]:
    return {
        "goal": node.goal or ABSENT,
        "vfp": node.vfp or ABSENT,
        "description": node.description or ABSENT,
        "long_description": node.long_description or ABSENT,
    }


def _find_parent(
    departments: dict[str, Department], sub_id: str
) -> Department | None:
    for dept in departments.values():
        if sub_id in dept.departments:
            return dept
    return None
