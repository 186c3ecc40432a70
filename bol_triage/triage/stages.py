from bol_triage.documents.models import ProcessingStage

# Strict emission order during one processing attempt.
STAGE_SEQUENCE: tuple[ProcessingStage, ...] = (
    ProcessingStage.UPLOAD_COMPLETE,
    ProcessingStage.TYPE_DETECTION,
    ProcessingStage.FIELD_EXTRACTION,
    ProcessingStage.DATA_VALIDATION,
    ProcessingStage.COMPLETE,
)

STAGE_PROGRESS: dict[ProcessingStage, int] = {
    ProcessingStage.UPLOAD_COMPLETE: 10,
    ProcessingStage.TYPE_DETECTION: 25,
    ProcessingStage.FIELD_EXTRACTION: 60,
    ProcessingStage.DATA_VALIDATION: 85,
    ProcessingStage.COMPLETE: 100,
}


def stage_changes(stage: ProcessingStage) -> dict[str, object]:
    return {"processing_stage": stage, "processing_progress": STAGE_PROGRESS[stage]}
