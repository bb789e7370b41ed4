"""Hierarchical ordering engine — group tree and per-scope sidebar order.

Owns two invariants over the project store:

- Depth: a ``PaperGroup`` is either a root (``parent_id`` NULL) or a subgroup
  whose parent is a root. Subgroups never hold subgroups.
- Density: inside every scope the index values are exactly 0..n-1.
  Group scope  = siblings sharing ``parent_id`` (``order_index``).
  Paper scope  = papers sharing ``group_id``, NULL = ungrouped (``sort_index``).

Ordering inside a scope is (index, created_at, id) ascending everywhere.

Every mutating function validates its inputs before touching a row, then
flushes once more at the end. Callers own the commit.

Transaction policy: flush() only, never commit().
"""
import logging

from sqlalchemy import func

from anning.core.exceptions import InvalidDepthError, NotFoundError
from anning.models.project import (
    DEFAULT_GROUP_NAME, DEFAULT_SUBGROUP_NAME, Paper, PaperGroup,
)

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════
# Scope queries
# ═══════════════════════════════════════════════════════════════

def _scope(column, value):
    return column.is_(None) if value is None else column == value


def _groups_query(session, parent_id):
    return (
        session.query(PaperGroup)
        .filter(_scope(PaperGroup.parent_id, parent_id))
        .order_by(PaperGroup.order_index, PaperGroup.created_at, PaperGroup.id)
    )


def _papers_query(session, group_id):
    return (
        session.query(Paper)
        .filter(_scope(Paper.group_id, group_id))
        .order_by(Paper.sort_index, Paper.created_at, Paper.id)
    )


def root_groups(session):
    """Root groups in display order."""
    return _groups_query(session, None).all()


def subgroups_of(session, group_id):
    """Direct subgroups of ``group_id`` in display order."""
    return _groups_query(session, group_id).all()


def papers_in(session, group_id):
    """Papers in ``group_id`` (None = ungrouped) in display order."""
    return _papers_query(session, group_id).all()


def _next_group_index(session, parent_id):
    current = (
        session.query(func.max(PaperGroup.order_index))
        .filter(_scope(PaperGroup.parent_id, parent_id))
        .scalar()
    )
    return 0 if current is None else current + 1


def _next_paper_index(session, group_id):
    current = (
        session.query(func.max(Paper.sort_index))
        .filter(_scope(Paper.group_id, group_id))
        .scalar()
    )
    return 0 if current is None else current + 1


# ═══════════════════════════════════════════════════════════════
# Renumbering
# ═══════════════════════════════════════════════════════════════

def renumber_groups(session, parent_id):
    """Rewrite ``order_index`` of one group scope to 0..n-1. Returns n."""
    groups = _groups_query(session, parent_id).all()
    for index, group in enumerate(groups):
        if group.order_index != index:
            group.order_index = index
    session.flush()
    return len(groups)


def renumber_papers(session, group_id):
    """Rewrite ``sort_index`` of one paper scope to 0..n-1. Returns n."""
    papers = _papers_query(session, group_id).all()
    for index, paper in enumerate(papers):
        if paper.sort_index != index:
            paper.sort_index = index
    session.flush()
    return len(papers)


def renumber_all(session):
    """Renumber every group and paper scope in the store."""
    renumber_groups(session, None)
    renumber_papers(session, None)
    for group in session.query(PaperGroup).all():
        renumber_groups(session, group.id)
        renumber_papers(session, group.id)


def verify_integrity(session):
    """Return a list of invariant violations (empty when the store is sound)."""
    problems = []
    groups = {g.id: g for g in session.query(PaperGroup).all()}

    for group in groups.values():
        if group.parent_id is None:
            continue
        parent = groups.get(group.parent_id)
        if parent is None:
            problems.append(f"group {group.id} has missing parent {group.parent_id}")
        elif parent.parent_id is not None:
            problems.append(f"group {group.id} nested under subgroup {parent.id}")

    group_scopes = {}
    for group in groups.values():
        group_scopes.setdefault(group.parent_id, []).append(group.order_index)
    paper_scopes = {}
    for paper in session.query(Paper).all():
        paper_scopes.setdefault(paper.group_id, []).append(paper.sort_index)

    for kind, scopes in (("group", group_scopes), ("paper", paper_scopes)):
        for scope_id, indices in scopes.items():
            if sorted(indices) != list(range(len(indices))):
                problems.append(
                    f"{kind} scope {scope_id or 'root/ungrouped'} not dense: {sorted(indices)}"
                )
    return problems


# ═══════════════════════════════════════════════════════════════
# Lookups
# ═══════════════════════════════════════════════════════════════

def _get_group(session, group_id):
    group = session.get(PaperGroup, group_id) if group_id else None
    if group is None:
        raise NotFoundError("PaperGroup", group_id)
    return group


def _get_paper(session, paper_id):
    paper = session.get(Paper, paper_id) if paper_id else None
    if paper is None:
        raise NotFoundError("Paper", paper_id)
    return paper


def _clean_name(name, fallback):
    cleaned = (name or "").strip()
    return cleaned or fallback


# ═══════════════════════════════════════════════════════════════
# Group operations
# ═══════════════════════════════════════════════════════════════

def create_root_group(session, name=DEFAULT_GROUP_NAME):
    """Append a new root group at the end of the root scope. Returns its id."""
    group = PaperGroup(
        name=_clean_name(name, DEFAULT_GROUP_NAME),
        parent_id=None,
        order_index=_next_group_index(session, None),
        is_collapsed=False,
    )
    session.add(group)
    session.flush()
    logger.info("Created root group %s order=%d", group.id, group.order_index,
                extra={"group_id": group.id})
    return group.id


def create_subgroup(session, parent_id, name=DEFAULT_SUBGROUP_NAME):
    """Append a new subgroup under root group ``parent_id``. Returns its id.

    Raises:
        NotFoundError: parent does not exist.
        InvalidDepthError: parent is itself a subgroup.
    """
    parent = _get_group(session, parent_id)
    if parent.parent_id is not None:
        raise InvalidDepthError(parent.id)

    group = PaperGroup(
        name=_clean_name(name, DEFAULT_SUBGROUP_NAME),
        parent_id=parent.id,
        order_index=_next_group_index(session, parent.id),
        is_collapsed=False,
    )
    session.add(group)
    session.flush()
    logger.info(
        "Created subgroup %s under %s order=%d", group.id, parent.id, group.order_index,
        extra={"group_id": group.id},
    )
    return group.id


def rename_group(session, group_id, name):
    """Rename a group. Blank names fall back to the default group name."""
    group = _get_group(session, group_id)
    group.name = _clean_name(name, DEFAULT_GROUP_NAME)
    session.flush()
    return group


def toggle_collapsed(session, group_id, collapsed=None):
    """Flip ``is_collapsed`` (or set it when ``collapsed`` is given)."""
    group = _get_group(session, group_id)
    group.is_collapsed = (not group.is_collapsed) if collapsed is None else bool(collapsed)
    session.flush()
    return group


def delete_group(session, group_id):
    """Delete a group, reparenting its content instead of cascading.

    Subgroup: its papers are appended to the parent root group's paper scope.
    Root group: its papers are appended to the ungrouped scope; its subgroups
    become roots appended to the root scope in their existing relative order,
    keeping their own papers.

    Both the group scope and the paper scope that received content end up
    dense.
    """
    group = _get_group(session, group_id)
    parent_id = group.parent_id

    moved_papers = papers_in(session, group.id)
    next_sort = _next_paper_index(session, parent_id)
    for offset, paper in enumerate(moved_papers):
        paper.group_id = parent_id
        paper.sort_index = next_sort + offset

    promoted = []
    if parent_id is None:
        promoted = subgroups_of(session, group.id)
        next_order = _next_group_index(session, None)
        for offset, child in enumerate(promoted):
            child.parent_id = None
            child.order_index = next_order + offset

    # reparent rows are written before the group row disappears
    session.flush()
    session.delete(group)
    session.flush()

    renumber_groups(session, parent_id)
    renumber_papers(session, parent_id)

    logger.info(
        "Deleted group %s: %d paper(s) moved to %s, %d subgroup(s) promoted",
        group_id, len(moved_papers), parent_id or "ungrouped", len(promoted),
        extra={"group_id": group_id},
    )


# ═══════════════════════════════════════════════════════════════
# Paper operations
# ═══════════════════════════════════════════════════════════════

def append_paper(session, paper, group_id=None):
    """Add a new paper at the end of ``group_id``'s scope (default ungrouped)."""
    if group_id is not None:
        _get_group(session, group_id)
    paper.group_id = group_id
    paper.sort_index = _next_paper_index(session, group_id)
    session.add(paper)
    session.flush()
    return paper


def move_paper(session, paper_id, target_group_id=None, before_paper_id=None):
    """Move a paper into ``target_group_id`` (None = ungrouped).

    The paper is inserted immediately before ``before_paper_id`` or at the
    end of the scope when that is None. The target scope is then renumbered
    0..n-1, and so is the source scope when it differs.

    Raises:
        NotFoundError: paper, target group, or before-paper missing, or the
            before-paper is not in the target scope. Nothing is mutated.
    """
    paper = _get_paper(session, paper_id)
    if target_group_id is not None:
        _get_group(session, target_group_id)

    source_group_id = paper.group_id
    scope = papers_in(session, target_group_id)
    siblings = [p for p in scope if p.id != paper.id]

    if before_paper_id is None:
        insert_at = len(siblings)
    elif before_paper_id == paper.id and source_group_id == target_group_id:
        insert_at = next(i for i, p in enumerate(scope) if p.id == paper.id)
    else:
        insert_at = next(
            (i for i, p in enumerate(siblings) if p.id == before_paper_id), None,
        )
        if insert_at is None:
            raise NotFoundError(
                "Paper", before_paper_id, reason="not in target group",
            )

    paper.group_id = target_group_id
    ordered = siblings[:insert_at] + [paper] + siblings[insert_at:]
    for index, item in enumerate(ordered):
        item.sort_index = index
    session.flush()

    if source_group_id != target_group_id:
        renumber_papers(session, source_group_id)

    logger.debug(
        "Moved paper %s: %s -> %s at %d",
        paper.id, source_group_id or "ungrouped", target_group_id or "ungrouped", insert_at,
    )
    return paper


def delete_paper(session, paper_id):
    """Delete a paper and close the gap it leaves in its scope."""
    paper = _get_paper(session, paper_id)
    group_id = paper.group_id
    session.delete(paper)
    session.flush()
    renumber_papers(session, group_id)
    logger.info("Deleted paper %s from %s", paper_id, group_id or "ungrouped",
                extra={"paper_id": paper_id, "group_id": group_id})


# ═══════════════════════════════════════════════════════════════
# Tree view
# ═══════════════════════════════════════════════════════════════

def build_tree(session):
    """Return the sidebar tree: roots → subgroups → papers, plus ungrouped papers.

    Two queries total; the nesting is assembled in memory.
    """
    groups = (
        session.query(PaperGroup)
        .order_by(PaperGroup.order_index, PaperGroup.created_at, PaperGroup.id)
        .all()
    )
    papers = (
        session.query(Paper)
        .order_by(Paper.sort_index, Paper.created_at, Paper.id)
        .all()
    )

    papers_by_group = {}
    for paper in papers:
        papers_by_group.setdefault(paper.group_id, []).append(paper.to_dict())

    children_by_parent = {}
    for group in groups:
        children_by_parent.setdefault(group.parent_id, []).append(group)

    def _node(group, with_subgroups):
        node = group.to_dict()
        node["papers"] = papers_by_group.get(group.id, [])
        if with_subgroups:
            node["subgroups"] = [
                _node(child, False) for child in children_by_parent.get(group.id, [])
            ]
        return node

    return {
        "roots": [_node(g, True) for g in children_by_parent.get(None, [])],
        "ungrouped": papers_by_group.get(None, []),
        "total_groups": len(groups),
        "total_papers": len(papers),
    }
