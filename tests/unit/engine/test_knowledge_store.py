"""
Tests for JsonKnowledgeBase.
"""

import json

from web_healer.engine.knowledge_store import JsonKnowledgeBase


class TestJsonKnowledgeBase:
    """Test ranking and persistence."""

    def test_empty_when_file_missing(self, tmp_path):
        kb = JsonKnowledgeBase(tmp_path / "kb.json")
        assert kb.get_best_selectors("example.com", "#old") == []

    def test_ranked_by_success_count(self, tmp_path):
        kb = JsonKnowledgeBase(tmp_path / "kb.json")
        kb.record_success("example.com", "#old", "#rare")
        for _ in range(3):
            kb.record_success("example.com", "#old", "#common")

        ranked = kb.get_best_selectors("example.com", "#old")

        assert [r.selector for r in ranked] == ["#common", "#rare"]
        assert ranked[0].success_count == 3
        assert ranked[0].last_success is not None

    def test_ties_broken_by_recency(self, tmp_path):
        path = tmp_path / "kb.json"
        path.write_text(json.dumps({
            "example.com": {
                "#old": {
                    "#older": {"success_count": 1, "last_success": "2024-01-01T00:00:00"},
                    "#newer": {"success_count": 1, "last_success": "2024-06-01T00:00:00"},
                }
            }
        }))

        ranked = JsonKnowledgeBase(path).get_best_selectors("example.com", "#old")

        assert [r.selector for r in ranked] == ["#newer", "#older"]

    def test_flush_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "kb.json"
        kb = JsonKnowledgeBase(path)
        kb.record_success("example.com", "#old", "#new")
        assert not path.exists()

        kb.flush()

        reloaded = JsonKnowledgeBase(path)
        assert reloaded.domains() == ["example.com"]
        assert reloaded.get_best_selectors("example.com", "#old")[0].selector == "#new"

    def test_autosave(self, tmp_path):
        path = tmp_path / "kb.json"
        kb = JsonKnowledgeBase(path, autosave=True)
        kb.record_success("example.com", "#old", "#new")
        assert path.exists()

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "kb.json"
        path.write_text("{not json")
        kb = JsonKnowledgeBase(path)
        assert kb.domains() == []
