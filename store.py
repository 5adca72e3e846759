from typing import List, Optional

from bson import ObjectId
from loguru import logger
from pymongo import ReturnDocument
from pymongo.database import Database

from database import oid, utcnow
from schemas import ProductCreate, ProductUpdate, VarietyIn

COLLECTION = "product"

# description is only returned when asked for explicitly
DEFAULT_PROJECTION = {"description": 0}


def _variety_document(variety: VarietyIn) -> dict:
    return {"_id": ObjectId(), **variety.model_dump()}


class ProductStore:
    """Reads and writes Product documents.

    Lookups by id return None when the product does not exist, including
    when the id is not a valid ObjectId.
    """

    def __init__(self, db: Database):
        self.collection = db[COLLECTION]

    def create(self, fields: ProductCreate) -> dict:
        now = utcnow()
        document = {
            "name": fields.name,
            "description": fields.description,
            "varieties": [_variety_document(v) for v in fields.varieties],
            "uploaded_at": now,
            "edited_at": now,
        }
        result = self.collection.insert_one(document)
        logger.info("Created product {}", result.inserted_id)
        return self.collection.find_one({"_id": result.inserted_id})

    def find_all(self) -> List[dict]:
        return list(self.collection.find({}, DEFAULT_PROJECTION))

    def find_one(self, product_id: str, projection: Optional[dict] = None) -> Optional[dict]:
        _id = oid(product_id)
        if _id is None:
            return None
        return self.collection.find_one({"_id": _id}, projection or DEFAULT_PROJECTION)

    def find_one_and_update(self, product_id: str, patch: ProductUpdate) -> Optional[dict]:
        _id = oid(product_id)
        if _id is None:
            return None

        data = patch.model_dump(exclude_unset=True)
        varieties = data.pop("varieties", None)
        update = {"$set": {**data, "edited_at": utcnow()}}
        if varieties:
            update["$addToSet"] = {
                "varieties": {"$each": [_variety_document(v) for v in patch.varieties]}
            }

        product = self.collection.find_one_and_update(
            {"_id": _id},
            update,
            projection=DEFAULT_PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
        if product is not None:
            logger.info("Updated product {}", product_id)
        return product

    def find_one_and_delete(self, product_id: str) -> Optional[dict]:
        _id = oid(product_id)
        if _id is None:
            return None
        product = self.collection.find_one_and_delete({"_id": _id})
        if product is not None:
            logger.info("Deleted product {}", product_id)
        return product

    def delete_variety(self, product_id: str, variety_id: str) -> Optional[bool]:
        """Remove the first variety whose id matches `variety_id`.

        Returns None if the product is missing, False if it has no such
        variety (nothing is written), True once the variety is removed.
        """
        product = self.find_one(product_id, {"varieties": 1})
        if product is None:
            return None

        varieties = product.get("varieties", [])
        for index, variety in enumerate(varieties):
            if str(variety.get("_id")) == variety_id:
                del varieties[index]
                break
        else:
            return False

        self.collection.update_one(
            {"_id": product["_id"]},
            {"$set": {"varieties": varieties, "edited_at": utcnow()}},
        )
        logger.info("Deleted variety {} from product {}", variety_id, product_id)
        return True
