from decimal import Decimal

import pytest

from app.data.models import CartModel
from app.domain.errors import (
    CartItemNotFound,
    DomainError,
    InsufficientStock,
    InvalidCoupon,
    OutOfStock,
    SizeRequired,
    TransactionFailed,
)
from conftest import flat_quantity, size_quantity


@pytest.fixture
def user(make_user):
    return make_user(1)


class TestFlatProductLifecycle:
    def test_add_update_remove(self, user, cart_service, scheduler, make_flat_product, db):
        mug = make_flat_product(price="10.00", quantity=5)

        cart = cart_service.add_product(1, mug.id, 3)
        assert flat_quantity(db, mug.id) == 2
        assert cart["cart_items"][0]["quantity"] == 3
        assert cart["pricing"]["total_price"] == Decimal("30.00")
        assert scheduler.scheduled == [(cart["id"], "job-1")]

        cart = cart_service.update_quantity(1, mug.id, 5)
        assert flat_quantity(db, mug.id) == 0
        assert cart["pricing"]["total_price"] == Decimal("50.00")

        cart = cart_service.remove_product(1, mug.id)
        assert flat_quantity(db, mug.id) == 5
        assert cart["cart_items"] == []
        assert cart["pricing"]["total_price"] == 0
        assert cart["pricing"]["tax_price"] == 0
        assert scheduler.cancelled == ["job-1"]

    def test_update_past_available_stock(self, user, cart_service, make_flat_product, db):
        mug = make_flat_product(quantity=2)
        cart_service.add_product(1, mug.id, 2)

        with pytest.raises(InsufficientStock) as exc:
            cart_service.update_quantity(1, mug.id, 3)

        assert "Only 2 item(s)" in exc.value.message
        assert flat_quantity(db, mug.id) == 0

    def test_quantity_must_be_positive(self, user, cart_service, make_flat_product):
        mug = make_flat_product()
        with pytest.raises(DomainError):
            cart_service.add_product(1, mug.id, 0)

    def test_add_then_remove_restores_stock(self, user, cart_service, make_flat_product, db):
        mug = make_flat_product(quantity=7)

        cart_service.add_product(1, mug.id, 4)
        cart_service.remove_product(1, mug.id)

        assert flat_quantity(db, mug.id) == 7


class TestSizedProducts:
    def test_out_of_stock_size_then_other_size(self, user, cart_service, scheduler, make_sized_product, db):
        hoodie = make_sized_product([("S", 2, "10.00"), ("M", 0, "12.00")])

        with pytest.raises(OutOfStock):
            cart_service.add_product(1, hoodie.id, 1, "M")
        assert scheduler.scheduled == []

        cart = cart_service.add_product(1, hoodie.id, 1, "S")
        assert cart["cart_items"][0]["size"] == "S"
        assert cart["cart_items"][0]["price"] == Decimal("10.00")
        assert size_quantity(db, hoodie.id, "S") == 1
        assert size_quantity(db, hoodie.id, "M") == 0

    def test_size_is_required(self, user, cart_service, make_sized_product):
        hoodie = make_sized_product([("S", 1, "30.00")])
        with pytest.raises(SizeRequired):
            cart_service.add_product(1, hoodie.id, 1)

    def test_size_matching_ignores_case(self, user, cart_service, make_sized_product, db):
        hoodie = make_sized_product([("S", 5, "30.00"), ("M", 5, "32.00")])

        cart_service.add_product(1, hoodie.id, 1, "s")
        cart = cart_service.add_product(1, hoodie.id, 2, "S")
        assert len(cart["cart_items"]) == 1
        assert cart["cart_items"][0]["quantity"] == 3

        cart = cart_service.remove_product(1, hoodie.id, "s")
        assert cart["cart_items"] == []
        assert size_quantity(db, hoodie.id, "S") == 5

    def test_each_size_is_its_own_line(self, user, cart_service, make_sized_product):
        hoodie = make_sized_product([("S", 5, "30.00"), ("M", 5, "32.00")])

        cart_service.add_product(1, hoodie.id, 1, "S")
        cart = cart_service.add_product(1, hoodie.id, 1, "M")

        assert [i["size"] for i in cart["cart_items"]] == ["M", "S"]
        assert cart["pricing"]["total_price"] == Decimal("62.00")


class TestCartLines:
    def test_same_product_merges_and_job_is_scheduled_once(self, user, cart_service, scheduler, make_flat_product):
        mug = make_flat_product(quantity=10)

        cart_service.add_product(1, mug.id, 1)
        cart = cart_service.add_product(1, mug.id, 2)

        assert len(cart["cart_items"]) == 1
        assert cart["cart_items"][0]["quantity"] == 3
        assert len(scheduler.scheduled) == 1

    def test_newest_line_first(self, user, cart_service, make_flat_product):
        mug = make_flat_product(title="Mug")
        plate = make_flat_product(title="Plate")

        cart_service.add_product(1, mug.id, 1)
        cart = cart_service.add_product(1, plate.id, 1)

        assert [i["product_id"] for i in cart["cart_items"]] == [plate.id, mug.id]

    def test_removing_missing_line(self, user, cart_service, make_flat_product):
        mug = make_flat_product()
        with pytest.raises(CartItemNotFound):
            cart_service.remove_product(1, mug.id)

    def test_two_carts_share_stock(self, make_user, cart_service, make_flat_product, db):
        make_user(1)
        make_user(2, name="Ola")
        mug = make_flat_product(quantity=10)

        cart_service.add_product(1, mug.id, 3)
        cart_service.add_product(2, mug.id, 4)

        assert flat_quantity(db, mug.id) == 3

    def test_clear_releases_everything_and_cancels_job(
        self, user, cart_service, scheduler, make_flat_product, make_sized_product, db
    ):
        mug = make_flat_product(quantity=5)
        hoodie = make_sized_product([("S", 5, "30.00")])
        cart_service.add_product(1, mug.id, 2)
        cart_service.add_product(1, hoodie.id, 3, "S")

        cart = cart_service.clear_cart(1)

        assert cart["cart_items"] == []
        assert flat_quantity(db, mug.id) == 5
        assert size_quantity(db, hoodie.id, "S") == 5
        assert scheduler.cancelled == ["job-1"]

    def test_get_cart_drops_deleted_products_and_cancels_job(
        self, user, cart_service, scheduler, make_flat_product, db
    ):
        mug = make_flat_product()
        cart_service.add_product(1, mug.id, 1)

        db.delete(mug)
        db.commit()

        cart = cart_service.get_cart(1)
        assert cart["cart_items"] == []
        assert scheduler.cancelled == ["job-1"]


def test_failed_add_rolls_back_and_cancels_new_job(
    user, cart_service, scheduler, make_flat_product, monkeypatch, db
):
    mug = make_flat_product(quantity=5)

    def boom(cart):
        raise RuntimeError("database went away")

    monkeypatch.setattr(cart_service.pricing, "recompute", boom)

    with pytest.raises(TransactionFailed):
        cart_service.add_product(1, mug.id, 2)

    assert flat_quantity(db, mug.id) == 5
    assert [job for _, job in scheduler.scheduled] == ["job-1"]
    assert scheduler.cancelled == ["job-1"]


class TestCoupons:
    def test_apply_known_coupon(self, user, cart_service, gateway, make_flat_product):
        gateway.promotions["SPRING10"] = {"id": "promo_1", "code": "SPRING10", "percent_off": 10}
        mug = make_flat_product(price="10.00")
        cart_service.add_product(1, mug.id, 2)

        cart = cart_service.apply_coupon(1, "SPRING10")

        assert cart["coupon"]["coupon_code"] == "SPRING10"
        assert cart["coupon"]["discounted_amount"] == Decimal("2.00")
        assert cart["pricing"]["total_price_after_discount"] == Decimal("18.00")

    def test_unknown_coupon(self, user, cart_service, make_flat_product):
        mug = make_flat_product()
        cart_service.add_product(1, mug.id, 1)

        with pytest.raises(InvalidCoupon):
            cart_service.apply_coupon(1, "NOPE")

    def test_coupon_on_empty_cart_is_not_kept(self, user, cart_service, gateway):
        gateway.promotions["SPRING10"] = {"id": "promo_1", "code": "SPRING10", "percent_off": 10}

        cart = cart_service.apply_coupon(1, "SPRING10")

        assert cart["coupon"] is None
        assert cart["pricing"]["total_price_after_discount"] is None

    def test_coupon_cleared_when_cart_empties(self, user, cart_service, gateway, make_flat_product):
        gateway.promotions["SPRING10"] = {"id": "promo_1", "code": "SPRING10", "percent_off": 10}
        mug = make_flat_product()
        cart_service.add_product(1, mug.id, 1)
        cart_service.apply_coupon(1, "SPRING10")

        cart = cart_service.remove_product(1, mug.id)

        assert cart["coupon"] is None


class TestExpiry:
    def test_expire_releases_stock(self, user, cart_service, gateway, make_flat_product, db):
        mug = make_flat_product(quantity=5)
        cart = cart_service.add_product(1, mug.id, 3)
        cart_id = cart["id"]

        db.get(CartModel, cart_id).pending_checkout_session_id = "cs_old"
        db.commit()

        assert cart_service.expire_cart(cart_id, "job-1") is True

        assert flat_quantity(db, mug.id) == 5
        assert db.get(CartModel, cart_id).pending_expiry_job_id is None
        assert cart_service.get_cart(1)["cart_items"] == []
        assert gateway.expired == ["cs_old"]

    def test_stale_job_does_nothing(self, user, cart_service, make_flat_product, db):
        mug = make_flat_product(quantity=5)
        cart = cart_service.add_product(1, mug.id, 3)

        assert cart_service.expire_cart(cart["id"], "job-99") is False

        assert flat_quantity(db, mug.id) == 2
        assert len(cart_service.get_cart(1)["cart_items"]) == 1

    def test_missing_cart(self, cart_service):
        assert cart_service.expire_cart(404, "job-1") is False

    def test_new_job_after_cart_emptied(self, user, cart_service, scheduler, make_flat_product):
        mug = make_flat_product(quantity=5)

        cart_service.add_product(1, mug.id, 1)
        cart_service.remove_product(1, mug.id)
        cart_service.add_product(1, mug.id, 1)

        assert [job for _, job in scheduler.scheduled] == ["job-1", "job-2"]
