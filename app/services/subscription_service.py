"""
订阅与订阅数统计

展示订阅数 = 真实订阅记录数 + 频道的admin_subscriber_count
"""
import logging
from typing import Dict, Iterable, List, Tuple

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFound, InvalidInput, PersistenceError
from app.models.channel import Channel, Subscription
from app.models.user import User

logger = logging.getLogger(__name__)


async def count_subscriptions(db: AsyncSession, channel_id: int) -> int:
    """真实订阅数"""
    result = await db.execute(
        select(func.count(Subscription.id)).where(Subscription.channel_id == channel_id)
    )
    return result.scalar() or 0


async def subscription_counts(db: AsyncSession, channel_ids: Iterable[int]) -> Dict[int, int]:
    """批量统计真实订阅数"""
    ids = list(channel_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(Subscription.channel_id, func.count(Subscription.id))
        .where(Subscription.channel_id.in_(ids))
        .group_by(Subscription.channel_id)
    )
    return {row[0]: row[1] for row in result.all()}


def effective_count(channel: Channel, real_count: int) -> int:
    return real_count + (channel.admin_subscriber_count or 0)


async def effective_subscriber_count(db: AsyncSession, channel: Channel) -> int:
    """展示用订阅数"""
    return effective_count(channel, await count_subscriptions(db, channel.id))


async def set_target_subscriber_count(db: AsyncSession, channel_id: int, target: int) -> Tuple[Channel, int]:
    """
    运营设置目标订阅数

    存储的偏移量为达到目标所需的差额 max(0, target - 真实订阅数)。
    之后真实订阅数变化不会回溯修改偏移量。

    Returns:
        (更新后的频道, 真实订阅数)

    Raises:
        InvalidInput: target不是非负整数
        NotFound: 频道不存在
    """
    if isinstance(target, bool) or not isinstance(target, int) or target < 0:
        raise InvalidInput("subscriber_count必须为非负整数")

    channel = await db.get(Channel, channel_id)
    if not channel:
        raise NotFound(f"频道 {channel_id} 不存在")

    real_count = await count_subscriptions(db, channel_id)
    channel.admin_subscriber_count = max(0, target - real_count)
    await db.commit()
    await db.refresh(channel)

    logger.info(
        "Channel %s: %s real subscribers + %s admin offset (target %s)",
        channel_id, real_count, channel.admin_subscriber_count, target,
    )
    return channel, real_count


async def subscribe(db: AsyncSession, channel_id: int, user_id: int) -> Tuple[Subscription, bool]:
    """
    订阅频道，重复订阅返回已有记录

    Returns:
        (订阅记录, 是否新建)
    """
    channel = await db.get(Channel, channel_id)
    if not channel:
        raise NotFound("频道不存在")

    existing = await _find_subscription(db, channel_id, user_id)
    if existing:
        return existing, False

    subscription = Subscription(user_id=user_id, channel_id=channel_id)
    try:
        db.add(subscription)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Concurrent subscribe resolved by constraint: user=%s channel=%s", user_id, channel_id)
        return await _find_subscription(db, channel_id, user_id), False
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to subscribe user %s to channel %s", user_id, channel_id)
        raise PersistenceError("订阅失败") from exc

    await db.refresh(subscription)
    logger.info("User %s subscribed to channel %s", user_id, channel_id)
    return subscription, True


async def unsubscribe(db: AsyncSession, channel_id: int, user_id: int) -> bool:
    """
    取消订阅，未订阅时也视为成功

    Returns:
        bool: 是否实际删除了记录
    """
    result = await db.execute(
        delete(Subscription).where(
            Subscription.channel_id == channel_id,
            Subscription.user_id == user_id,
        )
    )
    await db.commit()
    removed = (result.rowcount or 0) > 0
    if removed:
        logger.info("User %s unsubscribed from channel %s", user_id, channel_id)
    return removed


async def is_subscribed(db: AsyncSession, channel_id: int, user_id: int) -> bool:
    return await _find_subscription(db, channel_id, user_id) is not None


async def list_subscribers(db: AsyncSession, channel_id: int) -> List[User]:
    result = await db.execute(
        select(User)
        .join(Subscription, Subscription.user_id == User.id)
        .where(Subscription.channel_id == channel_id)
        .order_by(Subscription.created_at.desc())
    )
    return list(result.scalars().all())


async def list_user_subscriptions(db: AsyncSession, user_id: int) -> List[Tuple[Channel, Subscription]]:
    """用户订阅的频道及订阅时间"""
    result = await db.execute(
        select(Channel, Subscription)
        .join(Subscription, Subscription.channel_id == Channel.id)
        .where(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def _find_subscription(db: AsyncSession, channel_id: int, user_id: int):
    result = await db.execute(
        select(Subscription).where(
            Subscription.channel_id == channel_id,
            Subscription.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()
