"""
Entity store: CRUD for users, categories, suppliers, storage areas and
products with uniqueness and referential-integrity checks.

Lookups and updates return None for a missing record, deletes return False;
the caller decides whether that is a 404. Conflicts raise DuplicateKey or
ReferentialConflict and leave the database untouched.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Type

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.category import Category
from models.inventory import Inventory
from models.movement import Movement
from models.product import Product
from models.storage_area import StorageArea
from models.supplier import Supplier
from models.users import Role, User
from schemas.category import CategoryCreate, CategoryUpdate
from schemas.product import ProductCreate, ProductUpdate
from schemas.storage_area import StorageAreaCreate, StorageAreaUpdate
from schemas.supplier import SupplierCreate, SupplierUpdate
from schemas.user import UserCreate, UserUpdate
from services.errors import DuplicateKey, NotFound, ReferentialConflict, ValidationError
from services.ledger import KeyLockRegistry, default_lock_registry
from utils.hashing import get_password_hash, verify_password

logger = logging.getLogger(__name__)


class EntityStore:
    def __init__(self, db: Session, locks: Optional[KeyLockRegistry] = None):
        self.db = db
        self.locks = locks or default_lock_registry

    # ---- helpers ----

    def _ensure_unique(self, model: Type, field: str, value: Any, exclude_id: Optional[int] = None) -> None:
        column = getattr(model, field)
        query = self.db.query(model).filter(column == value)
        if exclude_id is not None:
            query = query.filter(model.id != exclude_id)
        if self.db.query(query.exists()).scalar():
            raise DuplicateKey(model.__name__, field, value)

    def _save(self, obj, unique_fields: Sequence[str]):
        # Checks ran before the commit; a concurrent insert or delete can still win the race
        model = type(obj)
        obj_id = obj.id
        values = {field: getattr(obj, field) for field in unique_fields}
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            for field, value in values.items():
                self._ensure_unique(model, field, value, exclude_id=obj_id)
            raise ReferentialConflict(
                model.__name__, obj_id, "missing reference",
                f"{model.__name__} references a record that no longer exists",
            )
        self.db.refresh(obj)
        return obj

    def _create(self, model: Type, data: Dict[str, Any], unique_fields: Sequence[str]):
        for field in unique_fields:
            self._ensure_unique(model, field, data.get(field))
        obj = model(**data)
        self.db.add(obj)
        self._save(obj, unique_fields)
        logger.info("Created %s id=%s", model.__name__, obj.id)
        return obj

    def _update(self, obj, changes: Dict[str, Any], unique_fields: Sequence[str]):
        model = type(obj)
        for field, value in changes.items():
            if value is None and not model.__table__.c[field].nullable:
                raise ValidationError(f"{field} cannot be null", field=field)
        for field in unique_fields:
            if field in changes and changes[field] != getattr(obj, field):
                self._ensure_unique(model, field, changes[field], exclude_id=obj.id)
        for field, value in changes.items():
            setattr(obj, field, value)
        return self._save(obj, unique_fields)

    def _delete(self, obj) -> bool:
        name, obj_id = type(obj).__name__, obj.id
        self.db.delete(obj)
        try:
            self.db.commit()
        except IntegrityError:
            # Referenced by a row committed after the reference check
            self.db.rollback()
            raise ReferentialConflict(name, obj_id, "records created concurrently")
        logger.info("Deleted %s id=%s", name, obj_id)
        return True

    def _referenced(self, query) -> bool:
        return self.db.query(query.exists()).scalar()

    # ---- users ----

    def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.id).all()

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def create_user(self, payload: UserCreate) -> User:
        data = payload.model_dump(exclude={"password"})
        data["password_hash"] = get_password_hash(payload.password)
        return self._create(User, data, ["username"])

    def update_user(self, user_id: int, payload: UserUpdate) -> Optional[User]:
        user = self.get_user(user_id)
        if user is None:
            return None
        changes = payload.model_dump(exclude_unset=True, exclude={"password"})
        if payload.password:
            changes["password_hash"] = get_password_hash(payload.password)
        return self._update(user, changes, ["username"])

    def delete_user(self, user_id: int) -> bool:
        user = self.get_user(user_id)
        if user is None:
            return False
        if user.role == Role.ADMIN:
            admins = self.db.query(User).filter(User.role == Role.ADMIN).count()
            if admins == 1:
                raise ReferentialConflict("User", user_id, "last admin", "Cannot delete the last admin user")
        if self._referenced(self.db.query(Movement).filter(Movement.user_id == user_id)):
            raise ReferentialConflict("User", user_id, "movements")
        return self._delete(user)

    def authenticate_user(self, username: str, password: str) -> Optional[User]:
        user = self.get_user_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    # ---- categories ----

    def list_categories(self) -> List[Category]:
        return self.db.query(Category).order_by(Category.id).all()

    def get_category(self, category_id: int) -> Optional[Category]:
        return self.db.get(Category, category_id)

    def create_category(self, payload: CategoryCreate) -> Category:
        return self._create(Category, payload.model_dump(), ["name"])

    def update_category(self, category_id: int, payload: CategoryUpdate) -> Optional[Category]:
        category = self.get_category(category_id)
        if category is None:
            return None
        return self._update(category, payload.model_dump(exclude_unset=True), ["name"])

    def delete_category(self, category_id: int) -> bool:
        category = self.get_category(category_id)
        if category is None:
            return False
        if self._referenced(self.db.query(Product).filter(Product.category_id == category_id)):
            raise ReferentialConflict("Category", category_id, "products")
        return self._delete(category)

    # ---- suppliers ----

    def list_suppliers(self) -> List[Supplier]:
        return self.db.query(Supplier).order_by(Supplier.id).all()

    def get_supplier(self, supplier_id: int) -> Optional[Supplier]:
        return self.db.get(Supplier, supplier_id)

    def create_supplier(self, payload: SupplierCreate) -> Supplier:
        return self._create(Supplier, payload.model_dump(), ["name"])

    def update_supplier(self, supplier_id: int, payload: SupplierUpdate) -> Optional[Supplier]:
        supplier = self.get_supplier(supplier_id)
        if supplier is None:
            return None
        return self._update(supplier, payload.model_dump(exclude_unset=True), ["name"])

    def delete_supplier(self, supplier_id: int) -> bool:
        supplier = self.get_supplier(supplier_id)
        if supplier is None:
            return False
        if self._referenced(self.db.query(Product).filter(Product.supplier_id == supplier_id)):
            raise ReferentialConflict("Supplier", supplier_id, "products")
        return self._delete(supplier)

    # ---- storage areas ----

    def list_storage_areas(self) -> List[StorageArea]:
        return self.db.query(StorageArea).order_by(StorageArea.id).all()

    def get_storage_area(self, area_id: int) -> Optional[StorageArea]:
        return self.db.get(StorageArea, area_id)

    def create_storage_area(self, payload: StorageAreaCreate) -> StorageArea:
        return self._create(StorageArea, payload.model_dump(), ["name"])

    def update_storage_area(self, area_id: int, payload: StorageAreaUpdate) -> Optional[StorageArea]:
        area = self.get_storage_area(area_id)
        if area is None:
            return None
        return self._update(area, payload.model_dump(exclude_unset=True), ["name"])

    def delete_storage_area(self, area_id: int) -> bool:
        area = self.get_storage_area(area_id)
        if area is None:
            return False

        # Every (product, area) key a ledger write could target
        keys = [(product_id, area_id) for (product_id,) in self.db.query(Product.id).all()]
        with self.locks.hold(*keys):
            try:
                area = self.db.query(StorageArea).filter(StorageArea.id == area_id).populate_existing().first()
                if area is None:
                    return False
                if self._referenced(self.db.query(Inventory).filter(Inventory.storage_area_id == area_id)):
                    raise ReferentialConflict("StorageArea", area_id, "inventory")
                movements = self.db.query(Movement).filter(
                    (Movement.from_area_id == area_id) | (Movement.to_area_id == area_id)
                )
                if self._referenced(movements):
                    raise ReferentialConflict("StorageArea", area_id, "movements")
                self.db.delete(area)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise ReferentialConflict("StorageArea", area_id, "inventory")
            except Exception:
                self.db.rollback()
                raise

        logger.info("Deleted StorageArea id=%s", area_id)
        return True

    # ---- products ----

    def list_products(self) -> List[Product]:
        return self.db.query(Product).order_by(Product.id).all()

    def get_product(self, product_id: int) -> Optional[Product]:
        return self.db.get(Product, product_id)

    def get_product_by_sku(self, sku: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.sku == sku).first()

    def _check_product_refs(self, data: Dict[str, Any]) -> None:
        if data.get("category_id") is not None and self.get_category(data["category_id"]) is None:
            raise NotFound("Category", data["category_id"])
        if data.get("supplier_id") is not None and self.get_supplier(data["supplier_id"]) is None:
            raise NotFound("Supplier", data["supplier_id"])

    def create_product(self, payload: ProductCreate) -> Product:
        data = payload.model_dump()
        self._check_product_refs(data)
        return self._create(Product, data, ["sku"])

    def update_product(self, product_id: int, payload: ProductUpdate) -> Optional[Product]:
        product = self.get_product(product_id)
        if product is None:
            return None
        changes = payload.model_dump(exclude_unset=True)
        self._check_product_refs(changes)
        return self._update(product, changes, ["sku"])

    def delete_product(self, product_id: int) -> bool:
        """Remove the product with its ledger entries and movements, all or nothing."""
        if self.get_product(product_id) is None:
            return False

        # Lock the product in every area, not only where it is stocked now
        keys = [(product_id, area_id) for (area_id,) in self.db.query(StorageArea.id).all()]
        with self.locks.hold(*keys):
            try:
                product = self.db.query(Product).filter(Product.id == product_id).populate_existing().first()
                if product is None:
                    return False
                removed_entries = (
                    self.db.query(Inventory)
                    .filter(Inventory.product_id == product_id)
                    .delete(synchronize_session=False)
                )
                removed_movements = (
                    self.db.query(Movement)
                    .filter(Movement.product_id == product_id)
                    .delete(synchronize_session=False)
                )
                self.db.delete(product)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning("Cascade delete of product %s lost a race with a stock write", product_id)
                raise ReferentialConflict("Product", product_id, "inventory written during delete")
            except Exception:
                self.db.rollback()
                logger.exception("Cascade delete of product %s rolled back", product_id)
                raise

        logger.info(
            "Deleted product id=%s with %s inventory entries and %s movements",
            product_id, removed_entries, removed_movements,
        )
        return True
