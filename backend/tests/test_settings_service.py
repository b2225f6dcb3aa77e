import unittest
from decimal import Decimal

from heladeria import create_app
from heladeria.extensions import db
from heladeria.models import Setting
from heladeria.services import settings_service
from heladeria.services.settings_service import COMPANY_DEFAULTS, COMPANY_PREFIX
from heladeria.validation import ValidationError


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "SECRET_KEY": "test",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "TESTING": True,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        db.session.query(Setting).delete()
        db.session.commit()

    def test_get_missing_key_returns_default(self):
        self.assertIsNone(settings_service.get_setting("nope"))
        self.assertEqual(settings_service.get_setting("nope", 5), 5)

    def test_set_get_delete_round_trip(self):
        settings_service.set_setting("ui.theme", {"dark": True, "scale": 1.25})
        self.assertEqual(settings_service.get_setting("ui.theme"), {"dark": True, "scale": 1.25})

        settings_service.set_setting("ui.theme", "light")
        self.assertEqual(settings_service.get_setting("ui.theme"), "light")

        self.assertTrue(settings_service.delete_setting("ui.theme"))
        self.assertFalse(settings_service.delete_setting("ui.theme"))
        self.assertIsNone(settings_service.get_setting("ui.theme"))

    def test_company_config_defaults(self):
        self.assertEqual(settings_service.get_company_config(), COMPANY_DEFAULTS)

    def test_update_company_config_merges(self):
        config = settings_service.update_company_config({
            "fantasyName": "Heladería Polo",
            "serverIP": "  192.168.0.10:8080 ",
            "deliveryCost": "150.5",
        })

        self.assertEqual(config["fantasyName"], "Heladería Polo")
        self.assertEqual(config["serverIP"], "192.168.0.10:8080")
        self.assertEqual(config["deliveryCost"], 150.5)
        self.assertEqual(config["posNumber"], COMPANY_DEFAULTS["posNumber"])
        self.assertEqual(settings_service.get_delivery_cost(), Decimal("150.50"))
        self.assertEqual(settings_service.get_server_address(), "192.168.0.10:8080")

    def test_update_company_config_rejects_unknown_keys_atomically(self):
        with self.assertRaises(ValidationError):
            settings_service.update_company_config({"fantasyName": "X", "color": "red"})

        self.assertEqual(settings_service.get_company_config()["fantasyName"], "")

    def test_negative_delivery_cost_is_rejected(self):
        with self.assertRaises(ValidationError):
            settings_service.update_company_config({"deliveryCost": -1})

    def test_last_sync_date(self):
        self.assertEqual(settings_service.get_last_sync_date(), "")

        settings_service.set_last_sync_date("2026-03-01T10:00:00Z")

        self.assertEqual(settings_service.get_last_sync_date(), "2026-03-01T10:00:00Z")
        stored = db.session.get(Setting, COMPANY_PREFIX + "lastSyncDate")
        self.assertEqual(stored.value, '"2026-03-01T10:00:00Z"')


if __name__ == "__main__":
    unittest.main()
