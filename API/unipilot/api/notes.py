"""Notes API: read access to a student's notes, with app notes reconciled first."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from unipilot.academics.advisory import AdvisoryNoteGenerator
from unipilot.api.deps import get_uow
from unipilot.core.auth import current_student_id
from unipilot.models.entities import NOTE_TYPES
from unipilot.schemas.academics import NoteResponse
from unipilot.storage.unit_of_work import UnitOfWork

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("", response_model=list[NoteResponse])
async def list_notes(
    note_type: str | None = Query(default=None, alias="type"),
    student_id: int = Depends(current_student_id),
    uow: UnitOfWork = Depends(get_uow),
):
    async with uow:
        await AdvisoryNoteGenerator(uow.notes, uow.courses).sync_all(student_id)
        names = {c.id: c.course_name for c in await uow.courses.list_for_student(student_id)}
        notes = await uow.notes.list_for_student(student_id, note_type if note_type in NOTE_TYPES else None)
        response = [
            NoteResponse(
                id=n.id,
                course_id=n.course_id,
                course_name=names.get(n.course_id) if n.course_id is not None else None,
                content=n.content,
                note_type=n.note_type,
                created_at=n.created_at,
            )
            for n in notes
        ]
    return response
