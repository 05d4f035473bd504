"""
Run one intent through the decision pipeline and, on proceed, generate
and persist a ritual.

Usage:
    python scripts/run_decision.py "Improve my Spanish vocabulary" 14 [ritual_id]

Provider, database and override paths come from the environment (.env).
"""

import json
import logging
import os
import sys

# Add project root to path so we can import src
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.domains.overrides import get_playbook_registry
from src.orchestrator.decision import DecisionOrchestrator
from src.rituals.service import RitualService
from src.rituals.store import RitualStore
from src.schemas.base import DecisionBranch
from src.utils import settings
from src.utils.errors import InputError, PlanGenerationError
from src.utils.llm_client import get_llm_provider

logger = logging.getLogger("run_decision")


def main() -> int:
    if len(sys.argv) < 3:
        print(__doc__)
        return 2

    settings.configure_logging()
    text, days = sys.argv[1], int(sys.argv[2])
    ritual_id = sys.argv[3] if len(sys.argv) > 3 else "cli-ritual"

    registry = get_playbook_registry()
    generator = get_llm_provider()
    orchestrator = DecisionOrchestrator(registry=registry, generator=generator)

    try:
        decision = orchestrator.resolve(text, days=days)
    except InputError as e:
        logger.error(f"Rejected: {e}")
        return 1

    print(json.dumps(decision.model_dump(mode="json", exclude={"trace"}), indent=2, ensure_ascii=False))
    if decision.branch != DecisionBranch.PROCEED:
        return 0

    service = RitualService(RitualStore(settings.DATABASE_URL), generator, registry)
    try:
        record = service.generate(ritual_id, decision=decision)
    except PlanGenerationError as e:
        print(json.dumps(e.to_debug_dict(), indent=2, ensure_ascii=False))
        return 1

    for level in record.path.levels:
        print(f"{level.id}: {level.title}")
        for step in level.steps:
            print(f"  {step.id} [{record.progression.state_of(step.id).value}] {step.title}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
