"""
Identity resolution over the Contact table.

``IdentityResolver.resolve`` maps a partial identity (email and/or phone
number) onto its cluster within a single store transaction.

Secondaries always point straight at the current primary. When a primary is
demoted its dependents are re-pointed in the same transaction, so link chains
never form and are never followed.
"""

import logging
from typing import Iterable, List, Optional

from contact_store import ContactQueries, ContactStore
from db_models import Contact, LinkPrecedence, ResolvedIdentity
from errors import ConsistencyViolation, ValidationError

logger = logging.getLogger(__name__)


def _ordered_unique(values: Iterable[Optional[str]]) -> List[str]:
    seen = set()
    ordered = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def assemble_identity(primary: Contact, roster: List[Contact]) -> ResolvedIdentity:
    """Build the caller-facing view of a cluster.

    The primary's own email and phone number lead their lists; the rest keep
    first-seen order over the roster.
    """
    return ResolvedIdentity(
        primaryContactId=primary.id,
        emails=_ordered_unique([primary.email] + [c.email for c in roster]),
        phoneNumbers=_ordered_unique([primary.phoneNumber] + [c.phoneNumber for c in roster]),
        secondaryContactIds=[c.id for c in roster],
    )


class IdentityResolver:
    """Resolves submissions into identity clusters using the given store."""

    def __init__(self, store: ContactStore):
        self.store = store

    def resolve(self, email: Optional[str] = None, phone: Optional[str] = None) -> ResolvedIdentity:
        if not email and not phone:
            raise ValidationError("At least one of email or phoneNumber is required")
        email = email or None
        phone = phone or None

        with self.store.transaction() as contacts:
            matches = contacts.find_matching(email, phone)

            if not matches:
                primary = contacts.create(email=email, phone=phone)
                logger.info("Created primary contact %s", primary.id)
                return assemble_identity(primary, [])

            primary = self._consolidate(contacts, matches)
            roster = contacts.get_linked(primary.id)

            secondary = self._attach_new_information(contacts, primary, roster, email, phone)
            if secondary is not None:
                roster.append(secondary)

            return assemble_identity(primary, roster)

    def _consolidate(self, contacts: ContactQueries, matches: List[Contact]) -> Contact:
        """Keep the oldest matched primary and fold the other matched primaries into it."""
        primaries = [c for c in matches if c.is_primary]
        if not primaries:
            # only secondaries matched; matches are oldest first
            direct_secondaries = [c for c in matches if not c.is_primary]
            primaries = [self._primary_of(contacts, direct_secondaries[0])]

        for primary in primaries:
            if primary.linkedId is not None:
                raise ConsistencyViolation(
                    f"Primary contact {primary.id} is linked to {primary.linkedId}"
                )

        primaries.sort(key=lambda c: (c.createdAt, c.id))
        survivor, losers = primaries[0], primaries[1:]

        for loser in losers:
            contacts.demote_to_secondary(loser.id, survivor.id)
            moved = contacts.relink_secondaries(loser.id, survivor.id)
            logger.info(
                "Merged primary %s into %s (%d secondaries re-linked)",
                loser.id, survivor.id, moved,
            )

        return survivor

    def _primary_of(self, contacts: ContactQueries, secondary: Contact) -> Contact:
        if secondary.linkedId is None:
            raise ConsistencyViolation(f"Secondary contact {secondary.id} has no linkedId")

        primary = contacts.get_by_id(secondary.linkedId)
        if primary is None:
            raise ConsistencyViolation(
                f"Secondary contact {secondary.id} links to missing contact {secondary.linkedId}"
            )
        if not primary.is_primary:
            raise ConsistencyViolation(
                f"Secondary contact {secondary.id} links to non-primary contact {primary.id}"
            )
        return primary

    def _attach_new_information(
        self,
        contacts: ContactQueries,
        primary: Contact,
        roster: List[Contact],
        email: Optional[str],
        phone: Optional[str],
    ) -> Optional[Contact]:
        """Store a secondary holding whatever the submission adds to the cluster, if anything."""
        cluster = [primary] + roster
        known_emails = {c.email for c in cluster if c.email}
        known_phones = {c.phoneNumber for c in cluster if c.phoneNumber}

        has_new_email = email is not None and email not in known_emails
        has_new_phone = phone is not None and phone not in known_phones
        if not (has_new_email or has_new_phone):
            return None

        secondary = contacts.create(
            email=email if has_new_email else None,
            phone=phone if has_new_phone else None,
            linked_id=primary.id,
            precedence=LinkPrecedence.SECONDARY,
        )
        logger.info("Created secondary contact %s under primary %s", secondary.id, primary.id)
        return secondary
