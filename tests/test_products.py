import pytest
from decimal import Decimal
from httpx import AsyncClient

from backoffice.models import ProductCategory
from backoffice.repositories.product import ProductRepository


PRODUCT = {
    "name": "Woven basket",
    "description": "Hand woven",
    "qty": 7,
    "price": "19.99",
    "category": "TEXTILES"
}


@pytest.mark.asyncio
async def test_create_product(client: AsyncClient):
    response = await client.post("/products", json=PRODUCT)

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Product created successfully"
    data = body["data"]
    assert data["name"] == "Woven basket"
    assert data["qty"] == 7
    assert data["price"] == 19.99
    assert data["category"] == "TEXTILES"
    assert data["image"] is None


@pytest.mark.asyncio
async def test_create_product_invalid_category(client: AsyncClient):
    response = await client.post("/products", json={**PRODUCT, "category": "METAL"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_product_negative_quantity(client: AsyncClient):
    response = await client.post("/products", json={**PRODUCT, "qty": -1})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_products_filters(client: AsyncClient, make_product):
    await make_product(name="Clay Pot", category=ProductCategory.CLAY)
    await make_product(name="Wooden spoon", category=ProductCategory.WOOD)
    await make_product(name="clay cup", category=ProductCategory.CLAY)

    by_name = await client.get("/products", params={"name": "CLAY"})
    by_category = await client.get("/products", params={"category": "WOOD"})

    assert [p["name"] for p in by_name.json()["data"]] == ["clay cup", "Clay Pot"]
    assert [p["name"] for p in by_category.json()["data"]] == ["Wooden spoon"]


@pytest.mark.asyncio
async def test_get_product(client: AsyncClient, make_product):
    product = await make_product(name="Bowl", price="5.00")

    response = await client.get(f"/products/{product.id}")

    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Bowl"


@pytest.mark.asyncio
async def test_get_product_not_found(client: AsyncClient):
    response = await client.get("/products/missing")

    assert response.status_code == 404
    assert response.json()["detail"] == "Product not found"


@pytest.mark.asyncio
async def test_update_product(client: AsyncClient, make_product, stock_of):
    product = await make_product(qty=1)

    response = await client.put(f"/products/{product.id}", json={**PRODUCT, "qty": 12})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Woven basket"
    assert data["category"] == "TEXTILES"
    assert await stock_of(product.id) == 12


@pytest.mark.asyncio
async def test_update_product_not_found(client: AsyncClient):
    response = await client.put("/products/missing", json=PRODUCT)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_product(client: AsyncClient, make_product):
    product = await make_product()

    response = await client.delete(f"/products/{product.id}")

    assert response.status_code == 200
    assert response.json()["message"] == "Product deleted successfully"
    assert (await client.get(f"/products/{product.id}")).status_code == 404


@pytest.mark.asyncio
async def test_find_many_omits_missing_ids(db_session, make_product):
    first = await make_product(name="First")
    second = await make_product(name="Second")
    repository = ProductRepository(db_session)

    products = await repository.find_many([first.id, second.id, "missing", first.id])

    assert {product.id for product in products} == {first.id, second.id}
    assert await repository.find_many([]) == []


@pytest.mark.asyncio
async def test_adjust_quantity_has_no_floor(db_session, make_product):
    product = await make_product(qty=2)
    repository = ProductRepository(db_session)

    increased = await repository.adjust_quantity(product.id, 3)
    assert increased.qty == 5

    decreased = await repository.adjust_quantity(product.id, -7)
    assert decreased.qty == -2

    assert await repository.adjust_quantity("missing", 1) is None


@pytest.mark.asyncio
async def test_reserve_only_when_enough_stock(db_session, make_product, stock_of):
    product = await make_product(qty=3, price="2.50")
    repository = ProductRepository(db_session)

    assert await repository.reserve(product.id, 4) is None
    assert await stock_of(product.id) == 3

    reserved = await repository.reserve(product.id, 3)
    assert reserved.qty == 0
    assert reserved.price == Decimal("2.50")
    assert await repository.reserve(product.id, 1) is None
