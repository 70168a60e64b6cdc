from dataclasses import dataclass

from sqlalchemy.orm import Session

from cbt.models.system_settings import SystemSettings


@dataclass(frozen=True)
class ExamSettings:
    """
    Settings the exam session reads, resolved once per request.
    Defaults apply when the settings row has not been created.
    """
    shuffle_questions: bool = False
    show_results: bool = True
    auto_submit: bool = True


def get_system_settings(db: Session) -> SystemSettings:
    """
    The settings row, created with defaults on first access.
    """
    row = db.get(SystemSettings, 1)
    if row is None:
        row = SystemSettings(id=1)
        db.add(row)
        db.commit()
        db.refresh(row)
    return row


def get_exam_settings(db: Session) -> ExamSettings:
    row = db.get(SystemSettings, 1)
    if row is None:
        return ExamSettings()
    return ExamSettings(
        shuffle_questions=bool(row.shuffle_questions),
        show_results=bool(row.show_results),
        auto_submit=bool(row.auto_submit),
    )
