"""Identity directory — end-user identities, login methods and accounts.

Learn: An identity is tenant-independent. It reaches a project through
an application's client_id: registering via an application creates
the identity, a password login method and a user account in that
application's project, all in the caller's transaction.

Registering the same identifier through another project's application
(with the same password) adds an account in that project to the
existing identity. One account per project, never more.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Optional, Union

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tessera.auth.password import hash_password, verify_password
from tessera.db.models import Identity, LoginMethod, UserAccount
from tessera.errors import Conflict, InvalidCredentials, NotFound, ValidationFailed
from tessera.ids import parse_id
from tessera.services.tenant_service import TenantService

logger = structlog.get_logger()

IdLike = Union[str, uuid.UUID]

PASSWORD_METHOD = "password"
SUPPORTED_METHOD_TYPES = (PASSWORD_METHOD,)


@dataclass
class Registration:
    identity: Identity
    login_method: LoginMethod
    account: UserAccount


class IdentityService:
    """Business logic for end users."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tenants = TenantService(db)

    async def register(
        self,
        client_id: IdLike,
        method_type: str,
        identifier: str,
        password: str,
        profile: Optional[dict[str, Any]] = None,
    ) -> Registration:
        if method_type not in SUPPORTED_METHOD_TYPES:
            raise ValidationFailed(
                fields={"method_type": [f"unsupported login method: {method_type}"]}
            )

        application = await self.tenants.get_application_by_client_id(client_id)

        existing = await self._find_login_method(method_type, identifier)
        if existing:
            return await self._join_project(existing, password, application.project_id, profile)

        identity = Identity()
        self.db.add(identity)
        await self.db.flush()

        login_method = LoginMethod(
            identity_id=identity.id,
            method_type=method_type,
            identifier=identifier,
            password_hash=hash_password(password),
        )
        account = UserAccount(
            identity_id=identity.id,
            project_id=application.project_id,
            local_profile_data=profile or {},
        )
        self.db.add_all([login_method, account])
        await self.db.flush()

        logger.info(
            "identity.registered",
            identity_id=str(identity.id),
            project_id=str(application.project_id),
        )
        return Registration(identity=identity, login_method=login_method, account=account)

    async def _join_project(
        self,
        login_method: LoginMethod,
        password: str,
        project_id: uuid.UUID,
        profile: Optional[dict[str, Any]],
    ) -> Registration:
        """Give an existing identity an account in another project.

        The caller has to prove ownership of the login method. An identity
        holds at most one account per project.
        """
        if not login_method.password_hash or not verify_password(
            password, login_method.password_hash
        ):
            raise Conflict("Login method already registered")
        if await self._find_account(login_method.identity_id, project_id):
            raise Conflict("Identity already has an account in this project")

        account = UserAccount(
            identity_id=login_method.identity_id,
            project_id=project_id,
            local_profile_data=profile or {},
        )
        self.db.add(account)
        await self.db.flush()

        identity = await self.db.get(Identity, login_method.identity_id)
        logger.info(
            "identity.joined_project",
            identity_id=str(identity.id),
            project_id=str(project_id),
        )
        return Registration(identity=identity, login_method=login_method, account=account)

    async def authenticate(
        self,
        client_id: IdLike,
        identifier: str,
        password: str,
        method_type: str = PASSWORD_METHOD,
    ) -> UserAccount:
        """Check credentials for the application's project.

        Unknown identifier, wrong password and "no account in this
        project" are all the same InvalidCredentials.
        """
        application = await self.tenants.get_application_by_client_id(client_id)

        login_method = await self._find_login_method(method_type, identifier)
        if not login_method or not login_method.password_hash:
            raise InvalidCredentials()
        if not verify_password(password, login_method.password_hash):
            raise InvalidCredentials()

        account = await self._find_account(login_method.identity_id, application.project_id)
        if not account:
            raise InvalidCredentials()
        return account

    async def profile(self, identity_id: IdLike) -> dict:
        """Identity, its verified identifier, and its accounts."""
        identity_id = parse_id(identity_id, "sub")

        result = await self.db.execute(
            select(LoginMethod)
            .where(
                LoginMethod.identity_id == identity_id,
                LoginMethod.is_verified.is_(True),
            )
            .order_by(LoginMethod.id)
            .limit(1)
        )
        login_method = result.scalars().first()
        if not login_method:
            raise NotFound("No verified login method for this identity")

        result = await self.db.execute(
            select(UserAccount)
            .where(UserAccount.identity_id == identity_id)
            .order_by(UserAccount.id)
        )
        accounts = result.scalars().all()

        return {
            "identity_id": identity_id,
            "identifier": login_method.identifier,
            "accounts": [
                {
                    "account_id": a.id,
                    "project_id": a.project_id,
                    "profile": a.local_profile_data,
                }
                for a in accounts
            ],
        }

    async def _find_login_method(
        self, method_type: str, identifier: str
    ) -> Optional[LoginMethod]:
        result = await self.db.execute(
            select(LoginMethod).where(
                LoginMethod.method_type == method_type,
                LoginMethod.identifier == identifier,
            )
        )
        return result.scalars().first()

    async def _find_account(
        self, identity_id: uuid.UUID, project_id: uuid.UUID
    ) -> Optional[UserAccount]:
        result = await self.db.execute(
            select(UserAccount).where(
                UserAccount.identity_id == identity_id,
                UserAccount.project_id == project_id,
            )
        )
        return result.scalars().first()
