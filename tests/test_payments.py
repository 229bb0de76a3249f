from decimal import Decimal

import pytest

from vendorpos.errors import ValidationError
from vendorpos.payments import STATUS_RANK, classify_payment, resolve_tendered

D = Decimal


class TestClassifyPayment:
    @pytest.mark.parametrize(
        "tendered,status",
        [("239", "paid"), ("300", "paid"), ("100", "partial"), ("0.01", "partial"), ("0", "credit")],
    )
    def test_status(self, tendered, status):
        assert classify_payment(D(tendered), D("239")) == status

    def test_more_money_never_lowers_status(self):
        total = D("50")
        ranks = [STATUS_RANK[classify_payment(D(n), total)] for n in range(0, 60, 5)]
        assert ranks == sorted(ranks)


class TestResolveTendered:
    def test_full_takes_grand_total(self):
        assert resolve_tendered("full", D("239")) == D("239.00")

    def test_credit_takes_nothing(self):
        assert resolve_tendered("credit", D("239"), "50") == D("0.00")

    def test_partial_takes_entered_amount(self):
        assert resolve_tendered("partial", D("239"), "100") == D("100.00")

    def test_partial_blank_is_zero(self):
        assert resolve_tendered("partial", D("239"), "") == D("0.00")

    def test_partial_above_total_rejected(self):
        with pytest.raises(ValidationError, match="between 0 and 239.00"):
            resolve_tendered("partial", D("239"), "240")

    def test_partial_negative_rejected(self):
        with pytest.raises(ValidationError):
            resolve_tendered("partial", D("239"), "-1")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            resolve_tendered("barter", D("10"))
