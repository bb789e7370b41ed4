"""
Tests — hierarchical ordering engine (services.ordering).

Covers:
    - group creation, depth limit, rename, collapse toggle
    - delete_group reparenting (subgroup → root, root → ungrouped / promotion)
    - move_paper within and across scopes, failure without mutation
    - density after mixed operation sequences, renumber_all tie-break
    - build_tree shape and verify_integrity
"""

from datetime import datetime, timedelta, timezone

import pytest

from anning.core.exceptions import InvalidDepthError, NotFoundError
from anning.models.project import Paper, PaperGroup
from anning.services import ordering


def _group(store, group_id):
    return store.get(PaperGroup, group_id)


def _indices(items, attr):
    return [getattr(item, attr) for item in items]


def _assert_dense(store):
    assert ordering.verify_integrity(store) == []


# ═════════════════════════════════════════════════════════════════════════════
# GROUP CREATION
# ═════════════════════════════════════════════════════════════════════════════

class TestGroupCreation:
    def test_root_groups_append_densely(self, store, make_group):
        ids = [make_group(name) for name in ("A", "B", "C")]
        roots = ordering.root_groups(store)
        assert [g.id for g in roots] == ids
        assert _indices(roots, "order_index") == [0, 1, 2]

    def test_blank_name_gets_default(self, store):
        gid = ordering.create_root_group(store, "   ")
        assert _group(store, gid).name == "New Group"
        sub = ordering.create_subgroup(store, gid, None)
        assert _group(store, sub).name == "New Subgroup"

    def test_subgroup_scope_is_separate(self, store, make_group):
        a = make_group("A")
        b = make_group("B")
        a1 = make_group("A1", parent_id=a)
        a2 = make_group("A2", parent_id=a)
        b1 = make_group("B1", parent_id=b)

        assert _indices(ordering.subgroups_of(store, a), "order_index") == [0, 1]
        assert [g.id for g in ordering.subgroups_of(store, a)] == [a1, a2]
        assert _group(store, b1).order_index == 0
        assert _indices(ordering.root_groups(store), "order_index") == [0, 1]

    def test_subgroup_under_subgroup_is_rejected(self, store, make_group):
        a = make_group("A")
        a1 = make_group("A1", parent_id=a)
        before = store.query(PaperGroup).count()

        with pytest.raises(InvalidDepthError):
            ordering.create_subgroup(store, a1, "too deep")

        assert store.query(PaperGroup).count() == before

    def test_subgroup_of_missing_parent(self, store):
        with pytest.raises(NotFoundError):
            ordering.create_subgroup(store, "00000000-0000-0000-0000-000000000000", "x")

    def test_rename_and_toggle(self, store, make_group):
        gid = make_group("A")
        ordering.rename_group(store, gid, "  Transformers  ")
        assert _group(store, gid).name == "Transformers"
        ordering.rename_group(store, gid, "")
        assert _group(store, gid).name == "New Group"

        assert ordering.toggle_collapsed(store, gid).is_collapsed is True
        assert ordering.toggle_collapsed(store, gid).is_collapsed is False
        assert ordering.toggle_collapsed(store, gid, collapsed=True).is_collapsed is True
        assert ordering.toggle_collapsed(store, gid, collapsed=True).is_collapsed is True


# ═════════════════════════════════════════════════════════════════════════════
# GROUP DELETION
# ═════════════════════════════════════════════════════════════════════════════

class TestDeleteGroup:
    def test_delete_root_promotes_subgroup_and_keeps_papers(self, store, make_group, make_paper):
        a = make_group("A")
        a1 = make_group("A1", parent_id=a)
        p1 = make_paper("P1", group_id=a1)
        p2 = make_paper("P2")

        ordering.delete_group(store, a)

        assert _group(store, a) is None
        promoted = _group(store, a1)
        assert promoted.parent_id is None
        assert promoted.order_index == 0
        assert store.get(Paper, p1.id).group_id == a1
        assert store.get(Paper, p1.id).sort_index == 0
        assert store.get(Paper, p2.id).group_id is None
        assert store.get(Paper, p2.id).sort_index == 0
        _assert_dense(store)

    def test_delete_root_appends_promoted_after_remaining_roots(self, store, make_group):
        a = make_group("A")
        b = make_group("B")
        c = make_group("C")
        a1 = make_group("A1", parent_id=a)
        a2 = make_group("A2", parent_id=a)

        ordering.delete_group(store, a)

        assert [g.id for g in ordering.root_groups(store)] == [b, c, a1, a2]
        _assert_dense(store)

    def test_delete_root_moves_its_papers_to_end_of_ungrouped(self, store, make_group, make_paper):
        a = make_group("A")
        u0 = make_paper("U0")
        g0 = make_paper("G0", group_id=a)
        g1 = make_paper("G1", group_id=a)

        ordering.delete_group(store, a)

        assert [p.id for p in ordering.papers_in(store, None)] == [u0.id, g0.id, g1.id]
        _assert_dense(store)

    def test_delete_subgroup_moves_papers_to_parent(self, store, make_group, make_paper):
        a = make_group("A")
        a1 = make_group("A1", parent_id=a)
        a2 = make_group("A2", parent_id=a)
        in_a = make_paper("in A", group_id=a)
        s0 = make_paper("S0", group_id=a1)
        s1 = make_paper("S1", group_id=a1)

        ordering.delete_group(store, a1)

        assert [p.id for p in ordering.papers_in(store, a)] == [in_a.id, s0.id, s1.id]
        remaining = ordering.subgroups_of(store, a)
        assert [g.id for g in remaining] == [a2]
        assert remaining[0].order_index == 0
        _assert_dense(store)

    def test_delete_missing_group(self, store):
        with pytest.raises(NotFoundError):
            ordering.delete_group(store, "00000000-0000-0000-0000-000000000000")


# ═════════════════════════════════════════════════════════════════════════════
# PAPER MOVES
# ═════════════════════════════════════════════════════════════════════════════

class TestMovePaper:
    def test_move_before_first_in_same_group(self, store, make_group, make_paper):
        g = make_group("G")
        p1 = make_paper("P1", group_id=g)
        p2 = make_paper("P2", group_id=g)

        ordering.move_paper(store, p2.id, target_group_id=g, before_paper_id=p1.id)

        assert store.get(Paper, p2.id).sort_index == 0
        assert store.get(Paper, p1.id).sort_index == 1

    def test_move_to_end_when_no_anchor(self, store, make_paper):
        p1 = make_paper("P1")
        p2 = make_paper("P2")
        p3 = make_paper("P3")

        ordering.move_paper(store, p1.id, target_group_id=None)

        assert [p.id for p in ordering.papers_in(store, None)] == [p2.id, p3.id, p1.id]
        _assert_dense(store)

    def test_move_across_groups_renumbers_both(self, store, make_group, make_paper):
        a = make_group("A")
        b = make_group("B")
        a0 = make_paper("A0", group_id=a)
        a1 = make_paper("A1", group_id=a)
        a2 = make_paper("A2", group_id=a)
        b0 = make_paper("B0", group_id=b)

        ordering.move_paper(store, a1.id, target_group_id=b, before_paper_id=b0.id)

        assert [p.id for p in ordering.papers_in(store, a)] == [a0.id, a2.id]
        assert _indices(ordering.papers_in(store, a), "sort_index") == [0, 1]
        assert [p.id for p in ordering.papers_in(store, b)] == [a1.id, b0.id]
        assert store.get(Paper, a1.id).group_id == b
        _assert_dense(store)

    def test_move_into_ungrouped(self, store, make_group, make_paper):
        g = make_group("G")
        p = make_paper("P", group_id=g)
        u = make_paper("U")

        ordering.move_paper(store, p.id, target_group_id=None, before_paper_id=u.id)

        assert [x.id for x in ordering.papers_in(store, None)] == [p.id, u.id]
        assert ordering.papers_in(store, g) == []

    def test_drop_onto_itself_keeps_position(self, store, make_paper):
        p1 = make_paper("P1")
        p2 = make_paper("P2")

        ordering.move_paper(store, p2.id, target_group_id=None, before_paper_id=p2.id)

        assert [p.id for p in ordering.papers_in(store, None)] == [p1.id, p2.id]

    def test_anchor_outside_target_fails_without_mutation(self, store, make_group, make_paper):
        a = make_group("A")
        b = make_group("B")
        pa = make_paper("PA", group_id=a)
        pb = make_paper("PB", group_id=b)

        with pytest.raises(NotFoundError):
            ordering.move_paper(store, pa.id, target_group_id=a, before_paper_id=pb.id)

        assert store.get(Paper, pa.id).group_id == a
        assert store.get(Paper, pa.id).sort_index == 0
        assert store.get(Paper, pb.id).sort_index == 0

    def test_missing_target_group(self, store, make_paper):
        p = make_paper("P")
        with pytest.raises(NotFoundError):
            ordering.move_paper(store, p.id, target_group_id="00000000-0000-0000-0000-000000000001")
        assert store.get(Paper, p.id).group_id is None

    def test_missing_paper(self, store):
        with pytest.raises(NotFoundError):
            ordering.move_paper(store, "00000000-0000-0000-0000-000000000002")


# ═════════════════════════════════════════════════════════════════════════════
# DENSITY / RENUMBERING
# ═════════════════════════════════════════════════════════════════════════════

class TestDensity:
    def test_mixed_sequence_stays_dense(self, store, make_group, make_paper):
        a = make_group("A")
        b = make_group("B")
        a1 = make_group("A1", parent_id=a)
        b1 = make_group("B1", parent_id=b)
        papers = [make_paper(f"P{i}", group_id=gid) for i, gid in enumerate([a, a1, a1, b1, None, None])]

        ordering.move_paper(store, papers[0].id, target_group_id=b1, before_paper_id=papers[3].id)
        ordering.delete_group(store, a1)
        ordering.move_paper(store, papers[4].id, target_group_id=a)
        ordering.delete_group(store, b)
        ordering.delete_paper(store, papers[5].id)

        _assert_dense(store)
        for group in store.query(PaperGroup).all():
            if group.parent_id is not None:
                assert _group(store, group.parent_id).parent_id is None

    def test_delete_paper_closes_gap(self, store, make_paper):
        p0 = make_paper("P0")
        p1 = make_paper("P1")
        p2 = make_paper("P2")

        ordering.delete_paper(store, p1.id)

        assert [p.id for p in ordering.papers_in(store, None)] == [p0.id, p2.id]
        assert _indices(ordering.papers_in(store, None), "sort_index") == [0, 1]

    def test_renumber_breaks_ties_by_created_at(self, store):
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        later = Paper(title="later", sort_index=5, created_at=base + timedelta(days=1))
        earlier = Paper(title="earlier", sort_index=5, created_at=base)
        first = Paper(title="first", sort_index=2, created_at=base + timedelta(days=9))
        store.add_all([later, earlier, first])
        store.flush()

        assert ordering.verify_integrity(store) != []
        ordering.renumber_all(store)

        assert [p.title for p in ordering.papers_in(store, None)] == ["first", "earlier", "later"]
        _assert_dense(store)

    def test_verify_integrity_reports_depth_violation(self, store, make_group):
        a = make_group("A")
        a1 = make_group("A1", parent_id=a)
        rogue = PaperGroup(name="rogue", parent_id=a1, order_index=0)
        store.add(rogue)
        store.flush()

        problems = ordering.verify_integrity(store)
        assert any("nested under subgroup" in p for p in problems)


# ═════════════════════════════════════════════════════════════════════════════
# TREE VIEW
# ═════════════════════════════════════════════════════════════════════════════

class TestBuildTree:
    def test_tree_shape(self, store, make_group, make_paper):
        a = make_group("A")
        a1 = make_group("A1", parent_id=a)
        make_group("B")
        make_paper("in A", group_id=a)
        make_paper("in A1", group_id=a1)
        make_paper("loose")

        tree = ordering.build_tree(store)

        assert tree["total_groups"] == 3
        assert tree["total_papers"] == 3
        assert [r["name"] for r in tree["roots"]] == ["A", "B"]
        root_a = tree["roots"][0]
        assert [p["title"] for p in root_a["papers"]] == ["in A"]
        assert [s["name"] for s in root_a["subgroups"]] == ["A1"]
        assert [p["title"] for p in root_a["subgroups"][0]["papers"]] == ["in A1"]
        assert "subgroups" not in root_a["subgroups"][0]
        assert [p["title"] for p in tree["ungrouped"]] == ["loose"]
