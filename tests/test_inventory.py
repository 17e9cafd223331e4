"""Stock mutation at the storage level: the conditional update and checkout rollback."""
import asyncio

import pytest

from sweetshop.cart import functions as cart_functions
from sweetshop.catalog import functions as catalog_functions
from sweetshop.cart.functions import add_sweet_to_cart, checkout_cart, get_cart_view
from sweetshop.catalog.functions import (
    adjust_quantity,
    create_sweet,
    get_sweet_by_id,
    purchase_sweet,
    restock_sweet,
    update_sweet,
)
from sweetshop.database import SessionLocal
from sweetshop.errors import InsufficientStock, NotFound, ValidationError
from tests.conftest import run


async def _new_sweet(name="Toffee", quantity=10):
    async with SessionLocal() as db:
        sweet = await create_sweet(db, {"name": name, "category": "Toffee", "price": 1.0, "quantity": quantity})
        return sweet.id


async def _stock(sweet_id):
    async with SessionLocal() as db:
        return (await get_sweet_by_id(db, sweet_id)).quantity


class TestAdjustQuantity:

    def test_decrement_and_increment(self):
        async def scenario():
            sweet_id = await _new_sweet(quantity=5)
            async with SessionLocal() as db:
                assert (await adjust_quantity(db, sweet_id, -5)).quantity == 0
                assert (await adjust_quantity(db, sweet_id, 2)).quantity == 2
        run(scenario())

    def test_rejects_going_negative_without_writing(self):
        async def scenario():
            sweet_id = await _new_sweet(quantity=3)
            async with SessionLocal() as db:
                with pytest.raises(InsufficientStock):
                    await adjust_quantity(db, sweet_id, -4)
            return await _stock(sweet_id)
        assert run(scenario()) == 3

    def test_unknown_sweet(self):
        async def scenario():
            async with SessionLocal() as db:
                with pytest.raises(NotFound):
                    await adjust_quantity(db, 424242, -1)
        run(scenario())

    def test_stock_never_negative_over_a_sequence(self):
        async def scenario():
            sweet_id = await _new_sweet(quantity=4)
            observed = []
            for op, amount in [("buy", 3), ("buy", 3), ("restock", 2), ("buy", 3),
                               ("buy", 1), ("restock", 5), ("buy", 6)]:
                async with SessionLocal() as db:
                    try:
                        if op == "buy":
                            await purchase_sweet(db, sweet_id, amount)
                        else:
                            await restock_sweet(db, sweet_id, amount)
                    except InsufficientStock:
                        pass
                observed.append(await _stock(sweet_id))
            return observed
        observed = run(scenario())
        assert all(q >= 0 for q in observed)
        assert observed == [1, 1, 3, 0, 0, 5, 5]


class TestConcurrentPurchases:

    def test_only_available_stock_is_sold(self):
        async def buy(sweet_id):
            async with SessionLocal() as db:
                return await purchase_sweet(db, sweet_id, 3)

        async def scenario():
            sweet_id = await _new_sweet(quantity=20)
            results = await asyncio.gather(*(buy(sweet_id) for _ in range(10)), return_exceptions=True)
            return results, await _stock(sweet_id)

        results, remaining = run(scenario())
        sold = [r for r in results if not isinstance(r, Exception)]
        failed = [r for r in results if isinstance(r, Exception)]
        assert len(sold) == 6
        assert all(isinstance(e, InsufficientStock) for e in failed)
        assert remaining == 2


class TestCheckoutRollback:

    def test_failed_decrement_mid_checkout_rolls_back(self, monkeypatch):
        calls = []

        async def flaky_adjust(db, sweet_id, delta, commit=True):
            calls.append(sweet_id)
            if len(calls) == 2:
                raise InsufficientStock("stock taken by a concurrent purchase")
            return await adjust_quantity(db, sweet_id, delta, commit=commit)

        monkeypatch.setattr(cart_functions, "adjust_quantity", flaky_adjust)

        async def scenario():
            first = await _new_sweet(name="First", quantity=5)
            second = await _new_sweet(name="Second", quantity=5)
            async with SessionLocal() as db:
                await add_sweet_to_cart(db, 1, first, 2)
                await add_sweet_to_cart(db, 1, second, 2)
            async with SessionLocal() as db:
                with pytest.raises(InsufficientStock):
                    await checkout_cart(db, 1)
            async with SessionLocal() as db:
                cart = await get_cart_view(db, 1)
            return await _stock(first), await _stock(second), cart

        first_stock, second_stock, cart = run(scenario())
        assert (first_stock, second_stock) == (5, 5)
        assert len(cart.items) == 2


class TestConcurrentCheckouts:

    def test_competing_carts_never_oversell(self):
        async def fill_cart(user_id, sweet_id):
            async with SessionLocal() as db:
                await add_sweet_to_cart(db, user_id, sweet_id, 3)

        async def checkout(user_id):
            async with SessionLocal() as db:
                await checkout_cart(db, user_id)
                return "ok"

        async def remaining_lines(user_id):
            async with SessionLocal() as db:
                return len((await get_cart_view(db, user_id)).items)

        async def scenario():
            sweet_id = await _new_sweet(quantity=8)
            users = range(1, 6)
            for user_id in users:
                await fill_cart(user_id, sweet_id)
            results = await asyncio.gather(*(checkout(u) for u in users), return_exceptions=True)
            lines = [await remaining_lines(u) for u in users]
            return results, lines, await _stock(sweet_id)

        results, lines, remaining = run(scenario())
        succeeded = [i for i, r in enumerate(results) if r == "ok"]
        failed = [r for r in results if r != "ok"]
        assert len(succeeded) == 2
        assert all(isinstance(e, InsufficientStock) for e in failed)
        assert remaining == 2
        # carts that lost the race keep their lines
        assert [lines[i] for i in range(5) if i not in succeeded] == [1, 1, 1]
        assert all(lines[i] == 0 for i in succeeded)


class TestUpdateStock:

    def test_purchase_during_update_is_kept(self, monkeypatch):
        real_get = catalog_functions.get_sweet_by_id
        state = {"purchased": False}

        async def get_then_race(db, sweet_id):
            sweet = await real_get(db, sweet_id)
            if not state["purchased"]:
                state["purchased"] = True
                async with SessionLocal() as other:
                    await purchase_sweet(other, sweet_id, 3)
            return sweet

        async def scenario():
            sweet_id = await _new_sweet(quantity=10)
            monkeypatch.setattr(catalog_functions, "get_sweet_by_id", get_then_race)
            async with SessionLocal() as db:
                await update_sweet(db, sweet_id, {"quantity": 15})
            monkeypatch.setattr(catalog_functions, "get_sweet_by_id", real_get)
            return await _stock(sweet_id)

        # the update read 10 and asked for 15; the purchase of 3 in between still counts
        assert run(scenario()) == 12

    def test_update_cannot_drive_stock_negative(self):
        async def scenario():
            sweet_id = await _new_sweet(quantity=4)
            async with SessionLocal() as db:
                with pytest.raises(ValidationError):
                    await update_sweet(db, sweet_id, {"quantity": -1})
            return await _stock(sweet_id)
        assert run(scenario()) == 4
