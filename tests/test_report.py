import pytest

from ev_troubleshooting.domain.models import Manufacturer
from ev_troubleshooting.schemas.views import ViewKind
from ev_troubleshooting.services.report import ACTION_OPTIONS

CHAT = 55


@pytest.fixture
def at_fault_step(reports):
    reports.start(CHAT)
    reports.handle_text(CHAT, "Depot North")
    reports.handle_text(CHAT, "CP-0042")
    return reports


class TestReportWizard:
    def test_first_prompt(self, reports):
        view = reports.start(CHAT)
        assert view.kind == ViewKind.REPORT
        assert view.edit is False
        assert "Report Builder" in view.text
        assert "Step 1/5" in view.text
        assert "<b>site name</b>" in view.text
        assert view.callback_data == ["r:cancel"]
        assert reports.is_active(CHAT)

    def test_full_flow(self, at_fault_step):
        reports = at_fault_step
        view = reports.handle_text(CHAT, "Cable hanging loose")
        assert "Step 4/5" in view.text
        assert view.callback_data[-2:] == ["r:act:done", "r:cancel"]

        view = reports.toggle_action(CHAT, 1)
        assert view.edit is True
        assert view.keyboard[1][0].text == f"✅ {ACTION_OPTIONS[1]}"

        view = reports.finish_actions(CHAT)
        assert "Step 5/5" in view.text

        view = reports.choose_resolution(CHAT, 0)
        assert "Optional" in view.text
        assert view.callback_data == ["r:notes:skip", "r:cancel"]

        view = reports.handle_text(CHAT, "Customer informed")
        assert view.kind == ViewKind.REPORT
        assert "<b>Site:</b> Depot North" in view.text
        assert "<b>Charger:</b> CP-0042" in view.text
        assert "<b>Fault:</b> Cable hanging loose" in view.text
        assert f"• {ACTION_OPTIONS[1]}" in view.text
        assert "<b>Status / Outcome:</b> Resolved" in view.text
        assert "Customer informed" in view.text
        assert view.callback_data == ["r:new", "menu:mfr"]
        assert not reports.is_active(CHAT)

    def test_toggle_twice_unselects(self, at_fault_step):
        reports = at_fault_step
        reports.handle_text(CHAT, "Something")
        reports.toggle_action(CHAT, 0)
        view = reports.toggle_action(CHAT, 0)
        assert view.keyboard[0][0].text.startswith("⬜️")

    def test_skip_notes_and_no_actions(self, at_fault_step):
        reports = at_fault_step
        reports.handle_text(CHAT, "Something")
        reports.finish_actions(CHAT)
        reports.choose_resolution(CHAT, 3)
        view = reports.skip_notes(CHAT)
        assert "(none recorded)" in view.text
        assert "Escalated to OEM" in view.text
        assert "Notes" not in view.text

    def test_user_text_is_escaped(self, reports):
        reports.start(CHAT)
        reports.handle_text(CHAT, "<script>")
        reports.handle_text(CHAT, "id")
        reports.handle_text(CHAT, "fault")
        reports.finish_actions(CHAT)
        reports.choose_resolution(CHAT, 0)
        view = reports.skip_notes(CHAT)
        assert "&lt;script&gt;" in view.text

    def test_out_of_step_presses_are_ignored(self, reports):
        reports.start(CHAT)
        assert reports.finish_actions(CHAT) is None
        assert reports.toggle_action(CHAT, 0) is None
        assert reports.choose_resolution(CHAT, 0) is None
        assert reports.skip_notes(CHAT) is None
        assert reports.choose_fault(CHAT, Manufacturer.AUTEL, "F1") is None

    def test_invalid_indices_are_ignored(self, at_fault_step):
        reports = at_fault_step
        reports.handle_text(CHAT, "x")
        assert reports.toggle_action(CHAT, len(ACTION_OPTIONS)) is None
        reports.finish_actions(CHAT)
        assert reports.choose_resolution(CHAT, 42) is None

    def test_text_without_report(self, reports):
        assert reports.handle_text(CHAT, "hello") is None

    def test_blank_text_is_ignored(self, reports):
        reports.start(CHAT)
        assert reports.handle_text(CHAT, "   ") is None

    def test_cancel(self, reports):
        reports.start(CHAT)
        view = reports.cancel(CHAT)
        assert "Report cancelled." in view.text
        assert not reports.is_active(CHAT)


class TestReportFromContext:
    def test_offers_faults_of_previous_pack(self, reports, sessions):
        sessions.set(CHAT, {"pack": "autel", "fault_id": "F1"})
        reports.start(CHAT)
        assert sessions.get(CHAT) is None

        reports.handle_text(CHAT, "Site")
        view = reports.handle_text(CHAT, "Charger")
        assert view.callback_data == [
            "r:fault:autel:F1", "r:fault:autel:F2", "r:fault:autel:F3", "r:cancel",
        ]

        view = reports.choose_fault(CHAT, Manufacturer.AUTEL, "F2")
        assert "Step 4/5" in view.text

    def test_prefilled_from_fault_skips_fault_step(self, reports, sessions):
        sessions.set(CHAT, {"pack": "autel", "fault_id": "F1", "history": ["n1"]})
        view = reports.start_from_fault(CHAT, Manufacturer.AUTEL, "F1")
        assert "Step 1/4" in view.text
        assert "<b>Fault:</b> Emergency stop pressed" in view.text
        assert sessions.get(CHAT) is None

        reports.handle_text(CHAT, "Site")
        view = reports.handle_text(CHAT, "Charger")
        assert "Step 3/4" in view.text
        assert "r:act:done" in view.callback_data

    def test_prefilled_unknown_fault_uses_placeholder(self, reports):
        view = reports.start_from_fault(CHAT, Manufacturer.AUTEL, "F404")
        assert "🔵 Autel fault (F404)" in view.text
