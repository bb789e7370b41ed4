"""
Tests — structured log fields.

Services attach paper_id / group_id / project_path to their log records;
JSONFormatter copies them into each JSON line.
"""

import json
import logging

from anning.middleware.logging_config import JSONFormatter
from anning.services import ordering, paper_service, project_file


def _records_with(caplog, key, value):
    return [r for r in caplog.records if getattr(r, key, None) == value]


class TestServiceLogExtras:
    def test_ordering_records_carry_ids(self, store, make_group, make_paper, caplog):
        with caplog.at_level(logging.INFO, logger="anning"):
            root_id = make_group("Root")
            sub_id = make_group("Sub", parent_id=root_id)
            paper = make_paper("P", group_id=sub_id)
            ordering.delete_paper(store, paper.id)
            ordering.delete_group(store, sub_id)

        assert any("Created root group" in r.getMessage()
                   for r in _records_with(caplog, "group_id", root_id))
        sub_messages = [r.getMessage() for r in _records_with(caplog, "group_id", sub_id)]
        assert any("Created subgroup" in m for m in sub_messages)
        assert any("Deleted group" in m for m in sub_messages)
        assert any("Deleted paper" in r.getMessage()
                   for r in _records_with(caplog, "paper_id", paper.id))

    def test_paper_creation_carries_paper_id(self, store, caplog):
        with caplog.at_level(logging.INFO, logger="anning"):
            paper = paper_service.create_paper(store, {
                "title": "LoRA", "source_url": "https://arxiv.org/abs/2106.09685",
            })

        assert _records_with(caplog, "paper_id", paper.id)

    def test_project_file_records_carry_path(self, store, tmp_path, caplog):
        with caplog.at_level(logging.INFO, logger="anning"):
            written = project_file.save_project(store, tmp_path / "notes")
            project_file.load_project(store, written)

        messages = [r.getMessage() for r in _records_with(caplog, "project_path", written)]
        assert any(m.startswith("Saved project file") for m in messages)
        assert any(m.startswith("Opened project file") for m in messages)


class TestJSONFormatter:
    def test_extras_are_emitted(self):
        record = logging.makeLogRecord({
            "name": "anning.services.ordering",
            "levelname": "INFO",
            "msg": "Created root group %s",
            "args": ("g-1",),
            "group_id": "g-1",
        })

        line = json.loads(JSONFormatter().format(record))

        assert line["message"] == "Created root group g-1"
        assert line["group_id"] == "g-1"
        assert "paper_id" not in line
