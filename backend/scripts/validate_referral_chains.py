"""
Referral tree integrity check

Scans the sponsor links of every profile for cycles and, optionally,
validates the chain of specific users.

Usage:
    python3 validate_referral_chains.py
    python3 validate_referral_chains.py --user <user_id> [--user <user_id> ...]
"""
import argparse
import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv

# Load environment (backend/.env)
load_dotenv(os.path.join(os.path.dirname(__file__), '..', '.env'))

from purvita.services.referral_service import ReferralService

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate the referral tree")
    parser.add_argument("--user", action="append", default=[], help="Validate the chain of this user")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    service = ReferralService()

    problems = 0

    for user_id in args.user:
        report = service.validate_referral_chain(user_id)
        if report.valid:
            logger.info(f"{user_id}: valid, chain length {report.chain_length}")
        else:
            problems += 1
            logger.error(f"{user_id}: invalid ({'; '.join(report.errors)})")

    if not args.user:
        cycles = service.find_all_cycles()
        for cycle in cycles:
            problems += 1
            logger.error(f"Cycle of {cycle['cycle_length']} users: {' -> '.join(cycle['user_ids'])}")
        if not cycles:
            logger.info("No referral cycles found")

    return 1 if problems else 0


if __name__ == "__main__":
    sys.exit(main())
