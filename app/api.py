"""HTTP route definitions for the service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import AlertAttempt, EvaluationScheduling, TelemetryAccepted, TelemetryIn
from datastore.alert_log import AlertLog, build_default_alert_log
from datastore.telemetry_store import TelemetryStore, build_default_store
from services.coordinator import TriggerCoordinator, build_default_coordinator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_coordinator() -> TriggerCoordinator:
    return build_default_coordinator()


def get_store() -> TelemetryStore:
    return build_default_store()


def get_alert_log() -> AlertLog:
    return build_default_alert_log()


@router.post(
    "/telemetry",
    status_code=status.HTTP_201_CREATED,
    response_model=TelemetryAccepted,
    summary="Store a telemetry reading and schedule a stability check.",
)
def post_telemetry(
    message: TelemetryIn,
    store: TelemetryStore = Depends(get_store),
    coordinator: TriggerCoordinator = Depends(get_coordinator),
) -> TelemetryAccepted:
    try:
        record = store.append(message.device_id, message.payload)
    except OSError as exc:
        logger.error(
            "Failed to persist telemetry",
            extra={"device_id": message.device_id, "reason": str(exc)},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Telemetry could not be stored.",
        ) from exc

    try:
        scheduling = coordinator.submit(message.device_id, message.payload)
    except RuntimeError as exc:
        logger.error(
            "Could not schedule stability evaluation",
            extra={"device_id": message.device_id, "reason": str(exc)},
        )
        scheduling = EvaluationScheduling.ignored

    return TelemetryAccepted(
        device_id=record.device_id,
        timestamp=record.timestamp,
        evaluation=scheduling,
    )


@router.get(
    "/devices/{device_id}/alerts",
    response_model=list[AlertAttempt],
    summary="List notification attempts made for a device.",
)
def get_device_alerts(
    device_id: str,
    alert_log: AlertLog = Depends(get_alert_log),
) -> list[AlertAttempt]:
    return alert_log.list_for_device(device_id)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
