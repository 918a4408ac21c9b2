"""
Tests for InteractabilityVerifier and InteractabilityReport.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from fakes import FakeDriver, FakeNode

from web_healer.engine.models import InteractabilityReport
from web_healer.engine.verifier import INTERACTABILITY_JS, InteractabilityVerifier


class TestInteractabilityReport:
    """Test report parsing."""

    def test_from_script_all_true(self):
        report = InteractabilityReport.from_script({
            "visible": True, "inViewport": True, "notCovered": True, "notDisabled": True,
        })
        assert report.is_interactable
        assert report.reasons() == []

    def test_from_script_recomputes_conjunction(self):
        """A payload claiming success with a failed check is not trusted."""
        report = InteractabilityReport.from_script({
            "visible": True, "inViewport": False, "notCovered": True, "notDisabled": True,
            "isInteractable": True,
        })
        assert report.is_interactable is False
        assert report.reasons() == ["outside viewport"]

    def test_occluder_kept_only_when_covered(self):
        report = InteractabilityReport.from_script({
            "visible": True, "inViewport": True, "notCovered": False, "notDisabled": True,
            "occludingDescriptor": "div.cookie-banner",
        })
        assert report.occluding_descriptor == "div.cookie-banner"
        assert report.reasons() == ["covered by div.cookie-banner"]

    def test_failed_report(self):
        report = InteractabilityReport.failed("boom", is_stale=True)
        assert not report.is_interactable
        assert report.is_stale
        assert report.reasons() == ["check failed: boom"]


class TestInteractabilityVerifier:
    """Test check()."""

    @pytest.mark.asyncio
    async def test_check_uses_single_evaluation(self):
        driver = MagicMock()
        driver.evaluate = AsyncMock(return_value={
            "visible": True, "inViewport": True, "notCovered": True, "notDisabled": True,
        })
        handle = object()

        report = await InteractabilityVerifier(driver).check(handle)

        driver.evaluate.assert_awaited_once_with(INTERACTABILITY_JS, handle)
        assert report.is_interactable

    @pytest.mark.asyncio
    async def test_hidden_element(self):
        verifier = InteractabilityVerifier(FakeDriver())
        report = await verifier.check(FakeNode(visible=False))
        assert not report.is_interactable
        assert "not visible" in report.reasons()

    @pytest.mark.asyncio
    async def test_disabled_element(self):
        verifier = InteractabilityVerifier(FakeDriver())
        report = await verifier.check(FakeNode(disabled=True))
        assert report.not_disabled is False

    @pytest.mark.asyncio
    async def test_stale_handle_reported(self):
        verifier = InteractabilityVerifier(FakeDriver())
        report = await verifier.check(FakeNode(stale=True))
        assert report.error is not None
        assert report.is_stale is True

    @pytest.mark.asyncio
    async def test_other_error_not_stale(self):
        driver = FakeDriver()
        driver.evaluate_errors["interactability"] = RuntimeError("Target closed")
        report = await InteractabilityVerifier(driver).check(FakeNode())
        assert report.error == "Target closed"
        assert report.is_stale is False

    @pytest.mark.asyncio
    async def test_unexpected_result(self):
        driver = MagicMock()
        driver.evaluate = AsyncMock(return_value=None)
        report = await InteractabilityVerifier(driver).check(object())
        assert not report.is_interactable
        assert report.error.startswith("unexpected check result")

    def test_script_checks_hit_testing(self):
        assert "elementFromPoint" in INTERACTABILITY_JS
        assert "aria-disabled" in INTERACTABILITY_JS

    def test_any_aria_disabled_value_disables(self):
        assert "!el.hasAttribute('aria-disabled')" in INTERACTABILITY_JS
        assert "'false'" not in INTERACTABILITY_JS
