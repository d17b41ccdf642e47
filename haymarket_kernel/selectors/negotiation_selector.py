"""
Read queries over negotiation threads.

A thread is its root row plus every row whose parent_id is the root id,
ordered by round_number.  No recursive query is needed.
"""

from uuid import UUID

from sqlalchemy import exists, func, or_, select
from sqlalchemy.orm import aliased

from haymarket_kernel.domain.dtos import NegotiationInfo, Page, PageRequest, ThreadInfo
from haymarket_kernel.models.negotiation import Negotiation, NegotiationStatus
from haymarket_kernel.selectors.base import BaseSelector


class NegotiationSelector(BaseSelector[Negotiation]):
    """Negotiation nodes and threads as DTOs."""

    def get(self, negotiation_id: UUID) -> NegotiationInfo | None:
        negotiation = self.session.get(Negotiation, negotiation_id)
        return NegotiationInfo.from_model(negotiation) if negotiation else None

    def thread(self, thread_id: UUID) -> ThreadInfo | None:
        """Root plus replies in round order.  ``thread_id`` is the root id."""
        nodes = self.session.execute(
            select(Negotiation)
            .where(or_(Negotiation.id == thread_id, Negotiation.parent_id == thread_id))
            .order_by(Negotiation.round_number, Negotiation.created_at)
        ).scalars().all()
        if not nodes:
            return None
        infos = [NegotiationInfo.from_model(n) for n in nodes]
        return ThreadInfo(root=infos[0], replies=tuple(infos[1:]))

    def pending_count(self, thread_id: UUID) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(Negotiation)
            .where(or_(Negotiation.id == thread_id, Negotiation.parent_id == thread_id))
            .where(Negotiation.status == NegotiationStatus.PENDING.value)
        ).scalar_one()

    def threads_for_organization(
        self,
        organization_id: UUID,
        page: PageRequest,
        status: str | None = None,
    ) -> Page[ThreadInfo]:
        """
        Threads the organization takes part in, newest first.

        With ``status``, a thread matches when its root or any reply has it.
        """
        reply = aliased(Negotiation)
        query = (
            select(Negotiation)
            .where(Negotiation.parent_id.is_(None))
            .where(
                or_(
                    Negotiation.buyer_org_id == organization_id,
                    Negotiation.grower_org_id == organization_id,
                )
            )
        )
        if status is not None:
            query = query.where(
                or_(
                    Negotiation.status == status,
                    exists().where(
                        reply.parent_id == Negotiation.id,
                        reply.status == status,
                    ),
                )
            )

        total = self.session.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar_one()

        roots = self.session.execute(
            query.order_by(Negotiation.created_at.desc())
            .offset(page.offset)
            .limit(page.limit)
        ).scalars().all()

        threads = tuple(self.thread(root.id) for root in roots)
        return Page(items=threads, page=page.page, limit=page.limit, total=total)
