"""
Referral Service
Sponsor assignment and referral tree integrity

A referral tree must stay a tree: assigning a sponsor that already sits in
the user's downline would close a cycle and is rejected.
"""
import logging
from typing import Any, Dict, List, Optional

from purvita.core.exceptions import NotFoundError, ValidationError
from purvita.domain.network import ReferralChainReport
from purvita.repositories import AuditLogRepository, ProfileRepository

logger = logging.getLogger(__name__)

MAX_CHAIN_DEPTH = 50


class ReferralService:

    def __init__(
        self,
        profile_repo: Optional[ProfileRepository] = None,
        audit_repo: Optional[AuditLogRepository] = None
    ):
        self.profile_repo = profile_repo or ProfileRepository()
        self.audit_repo = audit_repo or AuditLogRepository()

    def would_create_cycle(self, new_user_id: str, referrer_id: str) -> bool:
        """
        True when making referrer_id the sponsor of new_user_id closes a loop

        Walks up from the referrer. Reaching new_user_id, or revisiting any
        node, means a cycle. Lookup errors count as a cycle.
        """
        visited = set()
        current: Optional[str] = referrer_id

        try:
            for _ in range(MAX_CHAIN_DEPTH + 1):
                if current is None:
                    return False
                if current == new_user_id or current in visited:
                    logger.warning(
                        f"[SECURITY] Circular referral detected: user={new_user_id}, referrer={referrer_id}"
                    )
                    return True
                visited.add(current)
                current = self.profile_repo.find_sponsor_id(current)
        except Exception as e:
            logger.error(f"Error detecting referral cycle for {new_user_id} -> {referrer_id}: {e}")
            return True

        logger.warning(f"Referral chain above {referrer_id} exceeds {MAX_CHAIN_DEPTH} levels")
        return True

    def validate_referral_chain(self, user_id: str) -> ReferralChainReport:
        errors: List[str] = []
        visited = set()
        current: Optional[str] = user_id
        depth = 0

        try:
            while current and depth < MAX_CHAIN_DEPTH:
                if current in visited:
                    errors.append(f"Cycle detected at user {current}")
                    break
                visited.add(current)

                if self.profile_repo.find_by_id(current) is None:
                    break

                current = self.profile_repo.find_sponsor_id(current)
                depth += 1
        except Exception as e:
            logger.error(f"Error validating referral chain of {user_id}: {e}")
            return ReferralChainReport(
                valid=False, max_depth=MAX_CHAIN_DEPTH, chain_length=depth, errors=["Error during validation"]
            )

        if depth >= MAX_CHAIN_DEPTH:
            errors.append("Maximum referral chain depth exceeded")

        return ReferralChainReport(
            valid=not errors,
            max_depth=MAX_CHAIN_DEPTH,
            chain_length=depth,
            errors=errors
        )

    def find_all_cycles(self) -> List[Dict[str, Any]]:
        """
        Scan the whole tree for cycles

        Returns:
            One entry per cycle: the users on it, in sponsor order
        """
        links = self.profile_repo.list_sponsor_links()
        cycles: List[Dict[str, Any]] = []
        settled = set()

        for start in links:
            if start in settled:
                continue
            path: List[str] = []
            position: Dict[str, int] = {}
            node: Optional[str] = start

            while node is not None and node not in settled and node not in position:
                position[node] = len(path)
                path.append(node)
                node = links.get(node)

            if node is not None and node in position:
                cycle = path[position[node]:]
                cycles.append({"user_ids": cycle, "cycle_length": len(cycle)})

            settled.update(path)

        return cycles

    def assign_sponsor(self, user_id: str, referral_code: str) -> Dict[str, Any]:
        """
        Attach a user to the sponsor owning referral_code

        Raises:
            NotFoundError: unknown referral code
            ValidationError: own code, sponsor already set, or the link would form a cycle
        """
        code = (referral_code or "").strip()
        if not code:
            raise ValidationError("Referral code is required", {"referral_code": "required"})

        sponsor = self.profile_repo.find_by_referral_code(code)
        if sponsor is None:
            raise NotFoundError("Referral code", code, "Referral code not found")

        if sponsor.id == user_id:
            raise ValidationError("You cannot use your own referral code")

        profile = self.profile_repo.find_by_id(user_id)
        if profile is None:
            raise NotFoundError("Profile", user_id)
        if profile.upline_sponsor_id:
            raise ValidationError("A sponsor is already assigned to this account")

        if self.would_create_cycle(user_id, sponsor.id):
            try:
                self.audit_repo.log_action("FRAUD_DETECTED", "profile", user_id, {
                    "reason": "circular_referral_blocked",
                    "referrer_id": sponsor.id,
                }, actor_id=user_id)
            except Exception as e:
                logger.error(f"Failed to record circular referral attempt for {user_id}: {e}")
            raise ValidationError("This referral would create a circular referral chain")

        if not self.profile_repo.set_sponsor(user_id, sponsor.id):
            raise ValidationError("A sponsor is already assigned to this account")

        logger.info(f"Assigned sponsor {sponsor.id} to user {user_id}")
        return {"sponsor_id": sponsor.id, "sponsor_name": sponsor.name, "referral_code": code}

    def get_referral_status(self, user_id: str) -> Dict[str, Any]:
        profile = self.profile_repo.find_by_id(user_id)
        if profile is None:
            raise NotFoundError("Profile", user_id)

        sponsor_summary = None
        if profile.upline_sponsor_id:
            sponsor = self.profile_repo.find_by_id(profile.upline_sponsor_id)
            if sponsor is not None:
                sponsor_summary = {
                    "id": sponsor.id,
                    "name": sponsor.name,
                    "email": sponsor.email,
                    "referral_code": sponsor.referral_code,
                }

        chain = self.validate_referral_chain(user_id)

        return {
            "referral_code": profile.referral_code,
            "has_sponsor": profile.upline_sponsor_id is not None,
            "sponsor": sponsor_summary,
            "direct_referrals": self.profile_repo.count_direct_referrals(user_id),
            "chain_valid": chain.valid,
            "chain_length": chain.chain_length,
        }
