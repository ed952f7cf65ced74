"""Member directory domain service."""

from typing import Optional
from churchledger.database.base import Database
from churchledger.domain.entities import Member as MemberEntity
from churchledger.domain.errors import ValidationError, NotFoundError, member_not_found


class MemberService:
    """Service for reading (and, for administration, adding) members."""

    def __init__(self, db: Database):
        """Initialize member service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_member(
        self,
        first_name: str,
        last_name: str,
        middle_name: Optional[str] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> int:
        """Create a new member.

        Args:
            first_name: First name
            last_name: Last name
            middle_name: Optional middle name
            email: Optional email address
            phone: Optional phone number, stored as given

        Returns:
            Member ID

        Raises:
            ValidationError: If first or last name is blank
        """
        first_name = (first_name or "").strip()
        last_name = (last_name or "").strip()
        if not first_name or not last_name:
            raise ValidationError("Member first and last name are required")

        return self.db.create_member(
            first_name=first_name,
            last_name=last_name,
            middle_name=middle_name.strip() if middle_name else None,
            email=email.strip().lower() if email else None,
            phone=phone.strip() if phone else None,
        )

    def get_member(self, member_id: int) -> Optional[MemberEntity]:
        """Get member by ID.

        Args:
            member_id: Member ID

        Returns:
            Member entity or None if not found
        """
        return self.db.get_member(member_id)

    def require_member(self, member_id: int) -> MemberEntity:
        """Get member by ID or raise NotFoundError."""
        member = self.db.get_member(member_id)
        if member is None:
            raise NotFoundError(member_not_found(member_id))
        return member

    def list_members(self) -> list[MemberEntity]:
        """List all members."""
        return self.db.list_members()

    def search_by_name_tokens(self, tokens: list[str]) -> list[MemberEntity]:
        """Find members whose names contain every token.

        Each token must appear (case-insensitively) in the first, middle or
        last name. An empty token list matches nobody.
        """
        return self.db.search_members_by_name_tokens(tokens)

    def find_by_email(self, email: str) -> Optional[MemberEntity]:
        """Find a member by email address."""
        if not email:
            return None
        return self.db.find_member_by_email(email)

    def find_by_phone(self, phone: str) -> Optional[MemberEntity]:
        """Find a member by phone number."""
        if not phone:
            return None
        return self.db.find_member_by_phone(phone.strip())
