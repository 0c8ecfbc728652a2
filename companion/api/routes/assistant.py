# companion/api/routes/assistant.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from companion.api.deps import get_current_session
from companion.schemas.practice import GeneratedText, QuestionsIn, ReminderEmailIn, SummaryIn
from companion.services import llm
from companion.services.identity import Session

router = APIRouter(prefix="/assistant", tags=["assistant"])


# Generation never fails the request; errors come back as placeholder text.

@router.post("/summary", response_model=GeneratedText)
async def summary_ep(payload: SummaryIn, _session: Session = Depends(get_current_session)) -> GeneratedText:
    return GeneratedText(text=await llm.generate_clinical_summary(payload.raw_notes, payload.patient_name))


@router.post("/reminder-email", response_model=GeneratedText)
async def reminder_email_ep(payload: ReminderEmailIn, _session: Session = Depends(get_current_session)) -> GeneratedText:
    text = await llm.generate_reminder_email(
        payload.patient_name, payload.date.isoformat(), payload.time.strftime("%H:%M")
    )
    return GeneratedText(text=text)


@router.post("/questions", response_model=GeneratedText)
async def questions_ep(payload: QuestionsIn, _session: Session = Depends(get_current_session)) -> GeneratedText:
    return GeneratedText(text=await llm.suggest_therapeutic_questions(payload.context))
