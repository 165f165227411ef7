from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from data.database import Experiment, VariantAssignment
from models.experiments import AssignmentResponse, VariantConfig
from auth.security import ApiClient
from services.cache import CacheClient
from config import config
from fastapi import HTTPException, status
import random
import logging

logger = logging.getLogger(__name__)

# Define the maximum number of times to retry the transaction
MAX_RETRIES = config.max_assignment_retries


def weighted_random_selection(variants: list[dict], rng=random) -> dict:
    """
    Cumulative-weight draw: r in [0, total), walk the variants subtracting each
    weight until r falls inside one. Falls back to the first variant when
    floating point leaves r past the end.
    """
    total_weight = sum(variant.get("weight") or 0 for variant in variants)
    remaining = rng.random() * total_weight

    for variant in variants:
        weight = variant.get("weight") or 0
        if remaining < weight:
            return variant
        remaining -= weight

    return variants[0]


def find_variant(experiment: Experiment, variant_id: str) -> dict | None:
    for variant in experiment.variants or []:
        if variant.get("variant_id") == variant_id:
            return variant
    return None


def to_assignment_response(variant: dict, cached: bool) -> AssignmentResponse:
    return AssignmentResponse(
        variant_id=variant["variant_id"],
        variant_config=VariantConfig(screens=variant.get("screens") or []),
        cached=cached,
    )


def get_experiment(db: Session, experiment_id: str, organization_id: str) -> Experiment | None:
    """ Get an experiment owned by the caller's organization """
    return db.query(Experiment).filter(
        Experiment.id == experiment_id,
        Experiment.organization_id == organization_id,
    ).one_or_none()


def get_existing_assignment(db: Session, cache: CacheClient, experiment_id: str, user_id: str):
    """ Get existing assignment from cache, then database """

    existing_assignment = cache.get_assignment(experiment_id, user_id)
    if not existing_assignment:
        existing_assignment = db.query(VariantAssignment).filter(
                VariantAssignment.user_id == user_id,
                VariantAssignment.experiment_id == experiment_id
            ).first()

        if existing_assignment:
            cache.set_assignment(existing_assignment)
            logger.debug("get_existing_assignment %s cache miss", experiment_id)
    else:
        logger.debug("get_existing_assignment %s cache hit", experiment_id)

    return existing_assignment


def set_assignment(db: Session, cache: CacheClient, assignment: VariantAssignment):
    """ Persist a new assignment; the unique constraint is checked on commit """

    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    cache.set_assignment(assignment)


def serve_existing_assignment(db: Session, client: ApiClient, existing_assignment: VariantAssignment) -> AssignmentResponse:
    """
    Answer from a sticky assignment. Status is not re-checked here: users already
    in a paused or completed experiment keep their variant. The variant's screens
    are read from the experiment as it is now.
    """
    experiment = get_experiment(db, existing_assignment.experiment_id, client.organization_id)
    if not experiment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Experiment not found")

    variant = find_variant(experiment, existing_assignment.variant_id)
    if variant is None:
        # sticky: never re-draw for a user who already holds an assignment
        logger.warning("Assigned variant %s no longer exists in experiment %s (user %s)",
                       existing_assignment.variant_id, experiment.id, existing_assignment.user_id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Assigned variant no longer exists")

    logger.info("Found persistent assignment for user %s on EID %s: %s",
                existing_assignment.user_id, experiment.id, existing_assignment.variant_id)
    return to_assignment_response(variant, cached=True)


# --- Idempotent Assignment ---
def get_or_create_assignment(db: Session, cache: CacheClient, client: ApiClient, experiment_id: str, user_id: str, rng=random) -> AssignmentResponse:
    """
    Retrieves an existing assignment or creates a new one if doesn't exist,
    safely handling concurrent requests using the Unique Constraint + Retry pattern.
    """

    # Retry loop handles concurrent inserts that fail the unique constraint
    for attempt in range(MAX_RETRIES):

        # 1. CHECK FOR EXISTING ASSIGNMENT
        existing_assignment = get_existing_assignment(db=db, cache=cache, experiment_id=experiment_id, user_id=user_id)

        if existing_assignment:
            return serve_existing_assignment(db, client, existing_assignment)

        # --- Assignment is NEW, proceed to create it ---

        try:
            experiment = get_experiment(db, experiment_id, client.organization_id)
            if not experiment:
                logger.info("Experiment %s not found for organization %s.", experiment_id, client.organization_id)
                raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Experiment not found")

            if experiment.status != "active":
                logger.info("Experiment %s is %s, refusing new assignment for user %s.", experiment_id, experiment.status, user_id)
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Experiment is not active")

            if not experiment.variants:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Experiment has no variants")

            # 2. PERFORM WEIGHTED RANDOM SELECTION
            selected_variant = weighted_random_selection(experiment.variants, rng)

            # 3. ATTEMPT TO CREATE THE NEW ASSIGNMENT (THE WRITE)
            new_assignment = VariantAssignment(
                experiment_id=experiment_id,
                user_id=user_id,
                variant_id=selected_variant["variant_id"],
            )

            set_assignment(db=db, cache=cache, assignment=new_assignment)

            logger.info("SUCCESS: User %s newly assigned to %s (EID %s) on attempt %d.",
                        user_id, selected_variant["variant_id"], experiment_id, attempt + 1)
            return to_assignment_response(selected_variant, cached=False)

        except IntegrityError:
            # 4. HANDLE THE RACE CONDITION
            # A concurrent request inserted first; the next READ finds its row.
            db.rollback()

            logger.warning("RACE DETECTED: IntegrityError on user %s (EID %s). Retrying (Attempt %d/%d)...",
                           user_id, experiment_id, attempt + 2, MAX_RETRIES)

        except HTTPException:
            raise

        except Exception:
            db.rollback()
            logger.exception("An unexpected error occurred during assignment for user %s.", user_id)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to assign variant")

    # If all retries fail, something is seriously wrong
    logger.warning("Failed to get or create assignment for user %s after %d attempts.", user_id, MAX_RETRIES)
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to assign variant")
