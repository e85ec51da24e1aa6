import uuid
from dataclasses import dataclass

from fastapi import Depends, HTTPException
from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from kobciye.core.enum import NotificationType
from kobciye.core.exceptions import ServerErrorException
from kobciye.db.models.database import CreditPurchases, Profiles, User
from kobciye.db.session import get_session
from kobciye.libs.formats.datetime import now as get_now
from kobciye.schemas.shares.notification import NotificationCreateSchema
from kobciye.schemas.shares.rpc import CreditPurchaseIn, CreditPurchaseResult
from kobciye.services.shares.notification import NotificationService


@dataclass(frozen=True)
class CreditPackage:
    id: int
    credits: int
    price: int
    popular: bool = False

    @property
    def savings(self) -> int:
        return self.credits - self.price


CREDIT_PACKAGES: dict[int, CreditPackage] = {
    p.id: p
    for p in (
        CreditPackage(1, 50, 50),
        CreditPackage(2, 100, 90, popular=True),
        CreditPackage(3, 200, 170),
        CreditPackage(4, 500, 400),
    )
}

MOBILE_MONEY_METHODS = frozenset({"evc", "zaad", "sahal"})
PAYMENT_METHODS = MOBILE_MONEY_METHODS | {"card"}


class CreditService:
    def __init__(self, db: AsyncSession = Depends(get_session)):
        self.db = db

    @staticmethod
    def list_packages() -> list[dict]:
        return [
            {
                "id": p.id,
                "credits": p.credits,
                "price": p.price,
                "popular": p.popular,
                "savings": p.savings,
            }
            for p in CREDIT_PACKAGES.values()
        ]

    async def process_credit_purchase(
        self, user: User, schema: CreditPurchaseIn
    ) -> CreditPurchaseResult:
        """Record the purchase and add the credits in one transaction.

        No external gateway is contacted; the purchase completes immediately.
        """
        user_id = user.id

        pkg = CREDIT_PACKAGES.get(schema.package_id)
        if pkg is None:
            return CreditPurchaseResult(success=False, error="Invalid package")
        if schema.payment_method not in PAYMENT_METHODS:
            return CreditPurchaseResult(success=False, error="Invalid payment method")
        if schema.payment_method in MOBILE_MONEY_METHODS and not schema.phone_number:
            return CreditPurchaseResult(success=False, error="Phone number is required")

        try:
            now = get_now()

            # 1) purchase record
            purchase = CreditPurchases(
                id=uuid.uuid4(),
                user_id=user_id,
                package_id=pkg.id,
                credits=pkg.credits,
                amount=pkg.price,
                payment_method=schema.payment_method,
                phone_number=schema.phone_number,
                status="completed",
                transaction_id=f"KOB-{uuid.uuid4().hex[:12].upper()}",
                created_at=now,
                completed_at=now,
            )
            self.db.add(purchase)

            # 2) atomic increment, never read-modify-write
            credited = await self.db.execute(
                update(Profiles)
                .where(Profiles.user_id == user_id)
                .values(credits=Profiles.credits + pkg.credits, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            if credited.rowcount != 1:
                await self.db.rollback()
                return CreditPurchaseResult(success=False, error="Profile not found")

            await self.db.flush()
            new_balance = await self.db.scalar(
                select(Profiles.credits).where(Profiles.user_id == user_id)
            )
            purchase_id = purchase.id
            await self.db.commit()
        except HTTPException:
            raise
        except Exception as e:
            logger.exception(f"[Credits] user={user_id} package={schema.package_id}: {e}")
            await self.db.rollback()
            raise ServerErrorException("Payment failed")

        logger.info(
            f"[Credits] user {user_id} bought {pkg.credits} credits via {schema.payment_method}, balance {new_balance}"
        )

        await NotificationService(self.db).notify_quietly(
            NotificationCreateSchema(
                user_id=user_id,
                title="Credits added",
                message=f"{pkg.credits} credits have been added to your account.",
                type=NotificationType.CREDITS,
                link="/dashboard",
            )
        )

        return CreditPurchaseResult(
            success=True,
            purchase_id=purchase_id,
            credits_added=pkg.credits,
            new_balance=new_balance,
        )

    async def list_my_purchases(self, user_id: uuid.UUID):
        rows = await self.db.scalars(
            select(CreditPurchases)
            .where(CreditPurchases.user_id == user_id)
            .order_by(CreditPurchases.created_at.desc())
        )
        return [
            {
                "id": p.id,
                "package_id": p.package_id,
                "credits": p.credits,
                "amount": p.amount,
                "payment_method": p.payment_method,
                "status": p.status,
                "transaction_id": p.transaction_id,
                "created_at": p.created_at,
            }
            for p in rows
        ]
