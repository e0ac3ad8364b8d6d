"""Seed demo accounts and a sample course.

Run with ``python -m knowledge_chakra.seed``. Existing accounts (matched by
email) are left untouched, so the command is safe to repeat.
"""

from typing import Dict, List, NamedTuple

from sqlalchemy.orm import Session

from knowledge_chakra.api.v1.auth import get_user_by_email, hash_password, normalize_email
from knowledge_chakra.config import get_settings
from knowledge_chakra.db import Base, engine, session_scope
from knowledge_chakra.logging_config import get_logger, setup_logging
from knowledge_chakra.models import Course, CourseModule, Lesson, LessonType, User, UserRole

logger = get_logger(__name__)


class DemoAccount(NamedTuple):
    first_name: str
    last_name: str
    email: str
    role: UserRole


DEMO_ACCOUNTS: List[DemoAccount] = [
    DemoAccount("Admin", "User", "admin@knowledgechakra.com", UserRole.ADMIN),
    DemoAccount("John", "Smith", "teacher1@knowledgechakra.com", UserRole.TEACHER),
    DemoAccount("Emily", "Johnson", "teacher2@knowledgechakra.com", UserRole.TEACHER),
    DemoAccount("Alex", "Brown", "student1@knowledgechakra.com", UserRole.STUDENT),
    DemoAccount("Sarah", "Davis", "student2@knowledgechakra.com", UserRole.STUDENT),
    DemoAccount("Michael", "Wilson", "student3@knowledgechakra.com", UserRole.STUDENT),
]

# Per-role password used for newly created demo accounts
DEFAULT_PASSWORDS: Dict[UserRole, str] = {
    UserRole.ADMIN: "Admin123!",
    UserRole.TEACHER: "Teacher123!",
    UserRole.STUDENT: "Student123!",
}

SAMPLE_COURSE_TITLE = "Getting Started with Knowledge Chakra"


def seed_accounts(db: Session, accounts: List[DemoAccount] = DEMO_ACCOUNTS) -> List[User]:
    """Create missing accounts. Returns only the users created by this call."""

    created = []
    for account in accounts:
        if get_user_by_email(db, account.email) is not None:
            logger.info("Demo account %s already exists", account.email)
            continue
        user = User(
            email=normalize_email(account.email),
            password_hash=hash_password(DEFAULT_PASSWORDS[account.role]),
            first_name=account.first_name,
            last_name=account.last_name,
            role=account.role,
        )
        db.add(user)
        created.append(user)
        logger.info("Created %s account %s", account.role.value, account.email)
    db.flush()
    return created


def seed_sample_course(db: Session, instructor: User) -> Course:
    """Published course with one module of two lessons, created once per instructor."""

    course = (
        db.query(Course)
        .filter(Course.instructor_id == instructor.id, Course.title == SAMPLE_COURSE_TITLE)
        .first()
    )
    if course is not None:
        return course

    course = Course(
        title=SAMPLE_COURSE_TITLE,
        description="A short tour of courses, lessons and assessments.",
        instructor_id=instructor.id,
        published=True,
    )
    module = CourseModule(title="Welcome", position=0)
    module.lessons = [
        Lesson(title="How courses work", content="Courses are made of modules and lessons.",
               type=LessonType.TEXT, duration=5, position=0),
        Lesson(title="Taking a quiz", content="Quizzes are graded as soon as you submit.",
               type=LessonType.TEXT, duration=5, position=1),
    ]
    course.modules = [module]
    db.add(course)
    db.flush()
    logger.info("Created sample course %s for %s", course.id, instructor.email)
    return course


def seed(db: Session) -> List[User]:
    created = seed_accounts(db)
    teacher = get_user_by_email(db, "teacher1@knowledgechakra.com")
    if teacher is not None:
        seed_sample_course(db, teacher)
    return created


def main() -> None:
    setup_logging(get_settings())
    Base.metadata.create_all(bind=engine)
    with session_scope() as db:
        created = seed(db)
    logger.info("Seeding finished: %s new accounts", len(created))


if __name__ == "__main__":
    main()
