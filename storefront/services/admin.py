"""
Administration and Account Services

User and review administration for the admin console, and the customer's
address book.
"""

from typing import Any, Dict, List, Optional

import structlog

from storefront.auth.session import MIN_PASSWORD_LENGTH
from storefront.clients.resources import AddressesApi, AuthApi, ReviewsApi, UsersApi
from storefront.domain.models import Address, Review, User, UserRole
from storefront.errors import ValidationFailed

logger = structlog.get_logger(__name__)

_ADDRESS_REQUIRED = ("streetAddress", "city")


class UserAdminService:

    def __init__(self, users_api: UsersApi):
        self.users_api = users_api

    async def list(self, role: Optional[str] = None, search: Optional[str] = None) -> List[User]:
        """All users, optionally narrowed by role (any letter case) and a name/email term"""
        users = await self.users_api.list_all()
        wanted = UserRole.parse(role) if role else None
        if wanted is not None:
            users = [u for u in users if u.user_type == wanted]
        if search and search.strip():
            term = search.strip().lower()
            users = [
                u for u in users
                if term in " ".join(filter(None, [u.username, u.email, u.first_name, u.last_name])).lower()
            ]
        return users

    async def get(self, user_id: int) -> User:
        return await self.users_api.get(user_id)

    async def update(self, user_id: int, payload: Dict[str, Any]) -> User:
        return await self.users_api.update(user_id, payload)

    async def delete(self, user_id: int, acting_user_id: int) -> None:
        if user_id == acting_user_id:
            raise ValidationFailed("You cannot delete your own account", {"userId": "Cannot delete yourself"})
        await self.users_api.delete(user_id)
        logger.info("User deleted", user_id=user_id, by=acting_user_id)


class ReviewAdminService:

    def __init__(self, reviews_api: ReviewsApi):
        self.reviews_api = reviews_api

    async def list(self, product_id: Optional[int] = None, rating: Optional[int] = None) -> List[Review]:
        if product_id is not None and rating is not None:
            return await self.reviews_api.by_rating(product_id, rating)
        if product_id is not None:
            return await self.reviews_api.by_product(product_id)
        reviews = await self.reviews_api.list_all()
        if rating is not None:
            reviews = [r for r in reviews if r.rating == rating]
        return reviews

    async def mark_helpful(self, review_id: int) -> Review:
        return await self.reviews_api.mark_helpful(review_id)

    async def delete(self, review_id: int) -> None:
        await self.reviews_api.delete(review_id)


class AccountService:
    """A customer's own profile, password and addresses"""

    def __init__(self, user_id: int, users_api: UsersApi, addresses_api: AddressesApi, auth_api: AuthApi):
        self.user_id = user_id
        self.users_api = users_api
        self.addresses_api = addresses_api
        self.auth_api = auth_api

    async def profile(self) -> User:
        return await self.users_api.get(self.user_id)

    async def change_password(self, current_password: str, new_password: str) -> None:
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            message = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            raise ValidationFailed(message, {"newPassword": message})
        if new_password == current_password:
            raise ValidationFailed(
                "New password must differ from the current one",
                {"newPassword": "Choose a different password"},
            )
        await self.auth_api.change_password(self.user_id, current_password, new_password)

    async def addresses(self) -> List[Address]:
        return await self.addresses_api.by_user(self.user_id)

    @staticmethod
    def _check(payload: Dict[str, Any]) -> None:
        missing = {f: "This field is required" for f in _ADDRESS_REQUIRED if not str(payload.get(f) or "").strip()}
        if missing:
            raise ValidationFailed("Please complete the address", missing)

    async def add_address(self, payload: Dict[str, Any]) -> List[Address]:
        self._check(payload)
        await self.addresses_api.create(dict(payload, userId=self.user_id))
        return await self.addresses()

    async def update_address(self, address_id: int, payload: Dict[str, Any]) -> List[Address]:
        self._check(payload)
        await self.addresses_api.update(address_id, dict(payload, userId=self.user_id))
        return await self.addresses()

    async def delete_address(self, address_id: int) -> List[Address]:
        await self.addresses_api.delete(address_id)
        return await self.addresses()

    async def set_default_address(self, address_id: int) -> List[Address]:
        """The server unsets the previous default; the list is refetched to show it"""
        await self.addresses_api.set_default(address_id)
        return await self.addresses()
