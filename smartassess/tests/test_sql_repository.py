"""
Tests for the SQL repositories against a SQLite database (aiosqlite).
"""

import pytest
import pytest_asyncio

from smartassess.assessments.evaluation.lifecycle import SubmissionLifecycle, SubmittedAnswer
from smartassess.common.exceptions import ConflictError, NotFoundError
from smartassess.database import (
    SqlQuestionRepository,
    SqlSubmissionRepository,
    SqlTestRepository,
    close_database,
    get_session_factory,
    initialize_database
)
from smartassess.domain.questions import Difficulty, QuestionFilter, QuestionType
from smartassess.domain.submissions import Submission, SubmissionStatus
from smartassess.tests.factories import make_question, make_test


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    await initialize_database(f"sqlite+aiosqlite:///{tmp_path / 'smartassess.db'}", create_tables=True)
    yield get_session_factory()
    await close_database()


@pytest.mark.asyncio
async def test_question_find_keeps_insertion_order(session_factory):
    repository = SqlQuestionRepository(session_factory)
    for question in [
        make_question("z", "easy", 2, chapter="Optics"),
        make_question("a", "hard", 5),
        make_question("m", "easy", 3, question_type="multiple-choice", topic="Lenses", chapter="Optics"),
    ]:
        await repository.save(question)

    easy = await repository.find(QuestionFilter(subject_id="physics", difficulty=Difficulty.EASY))
    assert [q.question_id for q in easy] == ["z", "m"]

    filtered = await repository.find(QuestionFilter(
        chapters=("Optics",), topics=("Lenses",), question_types=(QuestionType.MULTIPLE_CHOICE,), marks=(3,)
    ))
    assert [q.question_id for q in filtered] == ["m"]

    loaded = await repository.get_by_id("m")
    assert loaded.question_type == QuestionType.MULTIPLE_CHOICE
    assert loaded.topic == "Lenses"


@pytest.mark.asyncio
async def test_question_save_replaces_existing(session_factory):
    repository = SqlQuestionRepository(session_factory)
    await repository.save(make_question("q1", marks=2))
    await repository.save(make_question("q1", marks=4, text="Updated"))

    loaded = await repository.get_by_id("q1")
    assert loaded.marks == 4
    assert loaded.text == "Updated"
    assert len(await repository.get_many(["q1", "missing"])) == 1


@pytest.mark.asyncio
async def test_test_round_trip(session_factory):
    repository = SqlTestRepository(session_factory)
    questions = [make_question("q1", marks=2), make_question("q2", marks=3)]
    await repository.save(make_test(questions, marks=[2, 5], show_results_immediately=True))

    test = await repository.get_by_id("test-1")
    assert test.question_ids() == ["q1", "q2"]
    assert test.total_marks == 7
    assert test.results_visible is True
    assert await repository.get_by_id("missing") is None


@pytest.mark.asyncio
async def test_submission_unique_per_test_and_student(session_factory):
    repository = SqlSubmissionRepository(session_factory)
    await repository.insert(Submission.create("test-1", "student-1", []))

    with pytest.raises(ConflictError):
        await repository.insert(Submission.create("test-1", "student-1", []))

    await repository.insert(Submission.create("test-1", "student-2", []))
    assert len(await repository.find_by_test("test-1")) == 2


@pytest.mark.asyncio
async def test_submission_update_and_status_filter(session_factory):
    repository = SqlSubmissionRepository(session_factory)
    first = Submission.create("test-1", "student-1", [])
    first.status = SubmissionStatus.SUBMITTED
    await repository.insert(first)
    second = Submission.create("test-1", "student-2", [])
    second.status = SubmissionStatus.SUBMITTED
    await repository.insert(second)

    loaded = await repository.get_by_id(second.submission_id)
    loaded.recompute_total()
    loaded.mark_evaluated("teacher-1")
    await repository.update(loaded)

    evaluated = await repository.find_by_test("test-1", status=SubmissionStatus.EVALUATED)
    assert [s.student_id for s in evaluated] == ["student-2"]
    assert evaluated[0].evaluated_by == "teacher-1"

    with pytest.raises(NotFoundError):
        await repository.update(Submission.create("test-1", "ghost", []))


@pytest.mark.asyncio
async def test_lifecycle_on_sql_repositories(session_factory):
    questions = [
        make_question("mc1", marks=2, question_type="multiple-choice", correct_answer="A"),
        make_question("sa1", marks=4),
    ]
    question_repository = SqlQuestionRepository(session_factory)
    for question in questions:
        await question_repository.save(question)
    test_repository = SqlTestRepository(session_factory)
    await test_repository.save(make_test(questions))
    submission_repository = SqlSubmissionRepository(session_factory)

    lifecycle = SubmissionLifecycle(test_repository, question_repository, submission_repository)
    created = await lifecycle.create_submission("test-1", "student-1", [
        SubmittedAnswer("mc1", "a"),
        SubmittedAnswer("sa1", "Some text"),
    ])

    stored = await submission_repository.get_by_test_and_student("test-1", "student-1")
    assert stored.submission_id == created.submission.submission_id
    assert stored.total_marks_obtained == 2
    assert stored.get_answer("sa1").marks_obtained is None
    assert stored.status == SubmissionStatus.SUBMITTED
