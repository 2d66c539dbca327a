import json
from decimal import Decimal

import pytest

from loanbook.cli import load_payments, main
from loanbook.config import settings
from loanbook.models.loan import RestructuringPolicy

BASE = ["--principal", "1200", "--rate", "2", "--term", "12", "--start", "2024-01-01"]


class TestCli:
    def test_fresh_schedule(self, capsys):
        main(BASE + ["--today", "2023-12-01"])
        out = capsys.readouterr().out
        assert "Installment value:    113.47" in out
        assert "Paid installments:    0/12" in out
        assert "pending" in out
        assert "2025-01-01" in out

    def test_with_payments_file(self, tmp_path, capsys):
        path = tmp_path / "payments.json"
        path.write_text(json.dumps([
            {"amount": "113.48", "date": "2024-02-01"},
            {"amount": "50", "date": "2024-03-01", "note": "OVERRIDE"},
        ]))
        main(BASE + ["--today", "2024-02-15", "--payments", str(path)])
        out = capsys.readouterr().out
        assert "Paid installments:    1/12" in out
        assert "Total paid:           113.48" in out
        assert "2024-02-01" in out

    def test_surplus_is_reported(self, tmp_path, capsys):
        path = tmp_path / "payments.json"
        path.write_text(json.dumps([{"amount": "2000", "date": "2024-01-10"}]))
        main(BASE + ["--today", "2024-02-15", "--payments", str(path)])
        out = capsys.readouterr().out
        assert "Overpaid:" in out
        assert "Progress:             100.00%" in out

    def test_indefinite_term(self, capsys):
        main(["--principal", "1000", "--rate", "3", "--start", "2024-01-01", "--today", "2024-01-31"])
        out = capsys.readouterr().out
        assert "Accumulated interest: 30.00" in out
        assert "Current balance:      1,030.00" in out
        assert "Status" not in out

    def test_payment_fixed_policy(self, capsys):
        main(BASE + ["--today", "2024-03-15", "--restructuring", "payment_fixed"])
        out = capsys.readouterr().out
        assert "0/14" in out

    def test_configured_policy_applies(self, monkeypatch, capsys):
        monkeypatch.setattr(settings, "restructuring_policy", RestructuringPolicy.PAYMENT_FIXED)
        main(BASE + ["--today", "2024-03-15"])
        assert "0/14" in capsys.readouterr().out

    def test_flag_overrides_configured_policy(self, monkeypatch, capsys):
        monkeypatch.setattr(settings, "restructuring_policy", RestructuringPolicy.PAYMENT_FIXED)
        main(BASE + ["--today", "2024-03-15", "--restructuring", "term_fixed"])
        assert "0/12" in capsys.readouterr().out

    def test_configured_tolerance_applies(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "payments.json"
        path.write_text(json.dumps([{"amount": "110", "date": "2024-02-01"}]))
        args = BASE + ["--today", "2024-02-15", "--payments", str(path)]

        main(args)
        assert "Paid installments:    0/12" in capsys.readouterr().out

        monkeypatch.setattr(settings, "paid_tolerance", Decimal("5"))
        main(args)
        assert "Paid installments:    1/12" in capsys.readouterr().out

    def test_unreadable_payments_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc:
            main(BASE + ["--payments", str(tmp_path / "missing.json")])
        assert exc.value.code == 1
        assert "Could not read payments" in capsys.readouterr().err

    def test_rejects_non_numeric_principal(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--principal", "lots", "--start", "2024-01-01"])
        assert exc.value.code == 2


class TestLoadPayments:
    def test_parses_entries(self, tmp_path):
        path = tmp_path / "payments.json"
        path.write_text(json.dumps([
            {"amount": 10.5, "date": "2024-02-01", "installment_number": 1},
            {"amount": "3", "date": None},
        ]))
        payments = load_payments(str(path))
        assert str(payments[0].amount) == "10.5"
        assert payments[0].installment_number == 1
        assert payments[1].date is None
