# cbt/scripts/create_student.py
"""
Issues a student login.

    python -m cbt.scripts.create_student --first John --last Doe --class JSS1 \
        --exam-code TEST-001A --password xK9mQ2
"""
import argparse
import logging

from cbt.crud.crud_student import create_student, get_student_by_exam_code
from cbt.db.session import SessionLocal

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create a student exam login")
    parser.add_argument("--first", required=True)
    parser.add_argument("--middle", default=None)
    parser.add_argument("--last", required=True)
    parser.add_argument("--class", dest="class_level", required=True)
    parser.add_argument("--exam-code", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        if get_student_by_exam_code(db, args.exam_code):
            logger.info(f"Student '{args.exam_code}' already exists.")
            return
        student = create_student(
            db,
            first_name=args.first,
            middle_name=args.middle,
            last_name=args.last,
            class_level=args.class_level,
            exam_code=args.exam_code,
            password=args.password,
        )
        logger.info(f"Student '{student.exam_code}' ({student.full_name}, {student.class_level}) created.")
    finally:
        db.close()


if __name__ == "__main__":
    main()
