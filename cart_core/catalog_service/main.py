# cart_core/catalog_service/main.py
# dev stand-in for the catalog collaborator, same routes CatalogClient calls
from fastapi import FastAPI, HTTPException

app = FastAPI(title="Catalog Service (dev mock)")


PRODUCTS = {
    "tee": {"id": "tee", "name": "Logo Tee", "price_cents": 2500},
    "mug": {"id": "mug", "name": "Enamel Mug", "price_cents": 1000},
    "hoodie": {"id": "hoodie", "name": "Zip Hoodie", "price_cents": 5900},
}

VARIANTS = {
    "tee-s": {"id": "tee-s", "product_id": "tee", "name": "S", "price_cents": None},
    "tee-xxl": {"id": "tee-xxl", "product_id": "tee", "name": "XXL", "price_cents": 2800},
    "hoodie-black": {"id": "hoodie-black", "product_id": "hoodie", "name": "Black", "price_cents": None},
}


@app.get("/products/{product_id}")
def get_product(product_id: str):
    product = PRODUCTS.get(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.get("/variants/{variant_id}")
def get_variant(variant_id: str):
    variant = VARIANTS.get(variant_id)
    if not variant:
        raise HTTPException(status_code=404, detail="Variant not found")
    return variant
