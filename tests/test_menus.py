from ev_troubleshooting.domain.models import Fault, FaultPack, Manufacturer
from ev_troubleshooting.repositories.fault_packs import StaticFaultPackRepository
from ev_troubleshooting.services.menus import MenuService
from ev_troubleshooting.schemas.views import ViewKind

CHAT = 9


def many_faults(count, common=()):
    return FaultPack(
        manufacturer=Manufacturer.KEMPOWER,
        faults=[Fault(id=str(i), title=f"Fault {i}", common=i in common) for i in range(count)],
    )


class TestManufacturerMenu:
    def test_lists_every_manufacturer(self, menus):
        view = menus.manufacturer_menu(CHAT)
        assert view.kind == ViewKind.MENU
        assert view.callback_data == [
            "general_dc:menu", "autel:menu", "kempower:menu", "tritium:menu", "r:new", "reset",
        ]

    def test_clears_session(self, menus, sessions):
        sessions.set(CHAT, {"pack": "autel", "fault_id": "F1"})
        menus.manufacturer_menu(CHAT)
        assert sessions.get(CHAT) is None


class TestPackMenu:
    def test_common_faults_first(self, menus):
        view = menus.pack_menu(CHAT, Manufacturer.AUTEL)
        assert view.callback_data[:3] == ["autel:fault:F2", "autel:fault:F1", "autel:fault:F3"]
        assert view.callback_data[3:] == ["r:new", "menu:mfr", "reset"]
        assert "autel:all" not in view.callback_data

    def test_short_menu_is_capped(self, sessions):
        repo = StaticFaultPackRepository({Manufacturer.KEMPOWER: many_faults(12, common={11})})
        menus = MenuService(repo, sessions, menu_size=4)

        view = menus.pack_menu(CHAT, Manufacturer.KEMPOWER)
        assert view.callback_data[:4] == [
            "kempower:fault:11", "kempower:fault:0", "kempower:fault:1", "kempower:fault:2",
        ]
        assert view.keyboard[4][0].text == "📋 All faults (12)"
        assert view.keyboard[4][0].callback_data == "kempower:all"
        assert "showing 4 of 12" in view.text

    def test_full_menu_lists_everything(self, sessions):
        repo = StaticFaultPackRepository({Manufacturer.KEMPOWER: many_faults(12)})
        menus = MenuService(repo, sessions, menu_size=4)

        view = menus.pack_menu(CHAT, Manufacturer.KEMPOWER, full=True)
        assert len([d for d in view.callback_data if ":fault:" in d]) == 12
        assert "kempower:all" not in view.callback_data

    def test_empty_pack_offers_noop(self, menus):
        view = menus.pack_menu(CHAT, Manufacturer.TRITIUM)
        assert view.callback_data[0] == "noop"
        assert "No faults are loaded" in view.text

    def test_clears_session_unless_asked_not_to(self, menus, sessions):
        sessions.set(CHAT, {"pack": "autel", "fault_id": "F1", "history": ["n1"]})
        menus.pack_menu(CHAT, Manufacturer.AUTEL, clear_session=False)
        assert sessions.get(CHAT).history == ["n1"]

        menus.pack_menu(CHAT, Manufacturer.AUTEL)
        assert sessions.get(CHAT) is None

    def test_oversized_fault_ids_are_omitted(self, sessions):
        pack = FaultPack(
            manufacturer=Manufacturer.KEMPOWER,
            faults=[Fault(id="k" * 70, title="Long"), Fault(id="ok", title="Short")],
        )
        menus = MenuService(StaticFaultPackRepository({Manufacturer.KEMPOWER: pack}), sessions)
        view = menus.pack_menu(CHAT, Manufacturer.KEMPOWER)
        assert [b.text for row in view.keyboard for b in row][0] == "Short"

    def test_header_names_pack(self, menus):
        view = menus.pack_menu(CHAT, Manufacturer.AUTEL)
        assert "<b>🔵 Autel Troubleshooting</b>" in view.text
