"""Income category domain service."""

from typing import Optional, Union
from churchledger.database.base import Database
from churchledger.domain.entities import IncomeCategory as IncomeCategoryEntity, PaymentType
from churchledger.domain.errors import ConflictError, ValidationError, duplicate_gl_code

DEFAULT_GL_CODE = "INC999"

# (gl_code, name, payment type) seeded by seed_defaults()
DEFAULT_INCOME_CATEGORIES = [
    ("INC001", "Membership Dues", PaymentType.MEMBERSHIP_DUE),
    ("INC002", "Tithes", PaymentType.TITHE),
    ("INC003", "Offerings", PaymentType.OFFERING),
    ("INC004", "Donations", PaymentType.DONATION),
    ("INC005", "Vows", PaymentType.VOW),
    ("INC006", "Building Fund", PaymentType.BUILDING_FUND),
    ("INC007", "Events", PaymentType.EVENT),
    ("INC008", "Religious Item Sales", PaymentType.RELIGIOUS_ITEM_SALES),
    ("INC009", "Tigray Hunger Fundraiser", PaymentType.TIGRAY_HUNGER_FUNDRAISER),
    (DEFAULT_GL_CODE, "Other Income", PaymentType.OTHER),
]


class IncomeCategoryService:
    """Service for managing income categories and their GL codes."""

    def __init__(self, db: Database):
        """Initialize income category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(
        self,
        gl_code: str,
        name: str,
        payment_type_mapping: Optional[Union[PaymentType, str]] = None,
    ) -> int:
        """Create an income category.

        Args:
            gl_code: General ledger code (e.g., "INC001")
            name: Display name
            payment_type_mapping: Payment type this category books

        Returns:
            Category ID

        Raises:
            ValidationError: If GL code or name is blank, or mapping is not a payment type
            ConflictError: If GL code already exists
        """
        gl_code = (gl_code or "").strip().upper()
        name = (name or "").strip()
        if not gl_code or not name:
            raise ValidationError("Income category GL code and name are required")

        mapping = None
        if payment_type_mapping is not None:
            try:
                mapping = PaymentType(payment_type_mapping).value
            except ValueError:
                raise ValidationError(f"Invalid payment type '{payment_type_mapping}'")

        if self.db.get_income_category_by_gl_code(gl_code) is not None:
            raise ConflictError(duplicate_gl_code(gl_code))

        return self.db.create_income_category(
            gl_code=gl_code, name=name, payment_type_mapping=mapping
        )

    def list_categories(self) -> list[IncomeCategoryEntity]:
        """List income categories ordered by GL code."""
        return self.db.list_income_categories()

    def find_by_payment_type(self, payment_type: Union[PaymentType, str]) -> Optional[IncomeCategoryEntity]:
        """Find the income category that books a payment type."""
        return self.db.find_income_category_by_payment_type(PaymentType(payment_type).value)

    def gl_code_for(self, payment_type: Union[PaymentType, str]) -> str:
        """Return the GL code for a payment type, or the generic other-income code."""
        category = self.find_by_payment_type(payment_type)
        if category is None:
            return DEFAULT_GL_CODE
        return category.gl_code

    def seed_defaults(self) -> int:
        """Create the default income categories that do not exist yet.

        Returns:
            Number of categories created
        """
        created = 0
        for gl_code, name, payment_type in DEFAULT_INCOME_CATEGORIES:
            if self.db.get_income_category_by_gl_code(gl_code) is None:
                self.db.create_income_category(
                    gl_code=gl_code, name=name, payment_type_mapping=payment_type.value
                )
                created += 1
        return created
