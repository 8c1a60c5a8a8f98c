import pytest

from quiz_funnel.errors import InvalidTransition, SessionNotInitialized
from quiz_funnel.flow import FlowController, SessionState

SCORES = [1, 2, 3, 4, 1, 2]


def _flow(content):
    return FlowController(content, SessionState())


def _answer_all(flow, scores=SCORES):
    for question_id, score in zip("abcdef", scores):
        flow.select_answer(f"{question_id}-{score}")


def test_answering_every_question_reaches_email(make_content):
    flow = _flow(make_content(include_open_mindedness=False, enable_scoring=True))
    assert flow.state.stage == "welcome"
    flow.start()

    for index, (question_id, score) in enumerate(zip("abcdef", SCORES), start=1):
        assert flow.current_question().id == question_id
        flow.select_answer(f"{question_id}-{score}")
        if index < 6:
            assert flow.state.question_index == index
            assert flow.state.stage == "quiz"

    assert flow.state.ledger.total_score() == 13
    assert flow.state.stage == "email"


def test_last_question_goes_to_mindedness_when_enabled(make_content):
    flow = _flow(make_content(include_open_mindedness=True))
    flow.start()
    _answer_all(flow)
    assert flow.state.stage == "mindedness"

    flow.set_open_mindedness(["o1", "o2", "unknown"])
    assert flow.state.open_mindedness == ["o1", "o2"]
    assert flow.summary().openness_score == 3

    flow.mindedness_next()
    assert flow.state.stage == "email"


def test_mindedness_allows_empty_selection(make_content):
    flow = _flow(make_content(include_open_mindedness=True))
    flow.start()
    _answer_all(flow)
    flow.mindedness_next()
    assert flow.state.stage == "email"
    assert flow.summary().openness_score == 0


def test_toggle_open_mindedness(make_content):
    flow = _flow(make_content(include_open_mindedness=True))
    flow.start()
    _answer_all(flow)
    flow.toggle_open_mindedness("o3", True)
    flow.toggle_open_mindedness("o1", True)
    flow.toggle_open_mindedness("o3", False)
    assert flow.state.open_mindedness == ["o1"]


def test_mindedness_back_returns_to_last_question(make_content):
    flow = _flow(make_content(include_open_mindedness=True))
    flow.start()
    _answer_all(flow)
    flow.back()
    assert flow.state.stage == "quiz"
    assert flow.state.question_index == 5
    assert flow.selected_answer() == "f-2"


def test_back_restores_previous_answer_without_removing_it(make_content):
    flow = _flow(make_content())
    flow.start()
    flow.select_answer("a-3")
    flow.select_answer("b-4")
    assert flow.selected_answer() is None

    flow.back()
    assert flow.state.question_index == 1
    assert flow.selected_answer() == "b-4"
    assert len(flow.state.ledger) == 2


def test_back_on_first_question_is_ignored(make_content):
    flow = _flow(make_content())
    flow.start()
    flow.back()
    assert flow.state.question_index == 0
    assert flow.state.stage == "quiz"


def test_reanswering_replaces_ledger_entry(make_content):
    flow = _flow(make_content())
    flow.start()
    flow.select_answer("a-1")
    flow.back()
    flow.select_answer("a-4")

    assert len(flow.state.ledger) == 1
    assert flow.state.ledger.get("a").answer_id == "a-4"
    assert flow.state.ledger.total_score() == 4
    assert flow.state.question_index == 1


def test_unknown_answer_is_recorded_with_zero_score(make_content):
    flow = _flow(make_content())
    flow.start()
    flow.select_answer("not-an-answer")
    assert flow.state.ledger.get("a").score == 0
    assert flow.state.question_index == 1


def test_go_to_clamps_index(make_content):
    flow = _flow(make_content())
    flow.start()
    flow.go_to(99)
    assert flow.state.question_index == 5
    flow.go_to(-3)
    assert flow.state.question_index == 0


def test_actions_outside_their_stage_raise(make_content):
    flow = _flow(make_content())
    with pytest.raises(InvalidTransition):
        flow.select_answer("a-1")
    flow.start()
    with pytest.raises(InvalidTransition):
        flow.start()
    with pytest.raises(InvalidTransition):
        flow.mindedness_next()
    with pytest.raises(InvalidTransition):
        flow.complete_email("someone@example.com")


def test_controller_without_state_fails_loudly(make_content):
    flow = FlowController(make_content(), None)
    with pytest.raises(SessionNotInitialized):
        flow.start()


def test_reset_clears_session(make_content):
    flow = _flow(make_content(include_open_mindedness=True, shuffle_questions=True))
    flow.start()
    _answer_all(flow)
    flow.set_open_mindedness(["o1"])
    flow.mindedness_next()
    flow.complete_email("someone@example.com", "lead_1")
    assert flow.state.stage == "results"

    flow.reset()
    state = flow.state
    assert state.stage == "welcome"
    assert state.question_index == 0
    assert len(state.ledger) == 0
    assert state.email == ""
    assert state.open_mindedness == []
    assert state.question_order == []
    assert state.lead_id is None


def test_question_shuffle_is_fixed_for_the_session(make_content):
    content = make_content(shuffle_questions=True)
    flow = _flow(content)
    flow.start()

    order = list(flow.state.question_order)
    assert sorted(order) == list("abcdef")
    assert [q.id for q in flow.regular_questions()] == order

    restored = FlowController(content, SessionState.from_dict(flow.state.to_dict()))
    assert [q.id for q in restored.regular_questions()] == order


def test_questions_keep_authored_order_without_shuffle(make_content):
    flow = _flow(make_content())
    flow.start()
    assert flow.state.question_order == []
    assert [q.id for q in flow.regular_questions()] == list("abcdef")


def test_answer_order_is_stable_across_renders(make_content):
    flow = _flow(make_content(shuffle_answers=True))
    flow.start()
    first = flow.display_answers(now_ms=1_700_000_000_000)
    second = flow.display_answers(now_ms=1_800_000_000_000)

    assert [a.id for a in first] == [a.id for a in second]
    assert sorted(a.id for a in first) == ["a-1", "a-2", "a-3", "a-4"]
    assert "a" in flow.state.answer_seeds


def test_answers_keep_authored_order_without_shuffle(make_content):
    flow = _flow(make_content(shuffle_answers=False))
    flow.start()
    assert [a.id for a in flow.display_answers()] == ["a-1", "a-2", "a-3", "a-4"]
    assert flow.state.answer_seeds == {}


def test_progress_counts_open_mindedness(make_content):
    flow = _flow(make_content(include_open_mindedness=True))
    flow.start()
    assert flow.progress() == (1, 7)
    _answer_all(flow)
    assert flow.progress() == (7, 7)

    plain = _flow(make_content(include_open_mindedness=False))
    plain.start()
    assert plain.progress() == (1, 6)


def test_state_survives_serialization_mid_quiz(make_content):
    content = make_content(include_open_mindedness=True)
    flow = _flow(content)
    flow.start()
    flow.select_answer("a-2")
    flow.select_answer("b-3")

    restored = FlowController(content, SessionState.from_dict(flow.state.to_dict()))
    assert restored.state.stage == "quiz"
    assert restored.state.question_index == 2
    assert restored.state.ledger.total_score() == 5
    assert restored.state.session_id == flow.state.session_id


def test_emotional_quiz_summary(make_content):
    flow = _flow(make_content(quiz_type="emotional", result_tiers=[]))
    flow.start()
    _answer_all(flow, [4, 4, 3, 4, 4, 3])
    summary = flow.summary()
    assert summary.score == 22
    assert summary.average == pytest.approx(22 / 6)
    assert summary.level == 4
    assert summary.tier is None
    assert summary.max_score == 24


def test_hypothesis_pages(hypothesis_content):
    flow = _flow(hypothesis_content)
    flow.start()
    assert flow.current_page().id == "p1"
    assert [q.id for q in flow.page_questions()] == ["h1", "h2"]

    assert flow.submit_page({"h1": False}) is False
    assert flow.state.page_submitted is False
    with pytest.raises(InvalidTransition):
        flow.next_page()

    assert flow.submit_page({"h1": False, "h2": True}) is True
    assert flow.state.ledger.get("h1").score == 1
    assert flow.state.ledger.get("h2").score == 0
    assert flow.hypothesis_answer("h2") is True
    with pytest.raises(InvalidTransition):
        flow.submit_page({"h1": True})

    flow.next_page()
    assert flow.current_page().id == "p2"
    assert flow.state.page_submitted is False
    assert flow.progress() == (2, 4)

    flow.submit_page({"h3": False, "h4": False})
    flow.next_page()
    assert flow.state.stage == "email"

    summary = flow.summary()
    assert (summary.correct, summary.total_questions, summary.percentage) == (3, 4, 75)
    assert summary.tier.title["en"] == "Expert"


def test_hypothesis_feedback_is_kept_on_email_stage(hypothesis_content):
    flow = _flow(hypothesis_content)
    flow.start()
    flow.submit_page({"h1": False, "h2": False})
    flow.next_page()
    flow.submit_page({"h3": False, "h4": False})
    flow.next_page()

    flow.set_feedback("  Age is not a proxy  ", "Ask better questions")
    assert flow.state.feedback_new_learnings == "Age is not a proxy"
    flow.complete_email("someone@example.com")
    assert flow.state.stage == "results"


def test_restored_position_past_the_end_is_clamped(make_content):
    content = make_content()
    state = SessionState.from_dict({"stage": "quiz", "question_index": 9})
    flow = FlowController(content, state)

    assert flow.state.question_index == 5
    assert flow.current_question().id == "f"
    flow.select_answer("f-2")
    assert flow.state.stage == "email"


def test_restored_page_past_the_end_is_clamped(hypothesis_content):
    state = SessionState.from_dict({"stage": "quiz", "page_index": 7, "question_index": 1, "page_submitted": True})
    flow = FlowController(hypothesis_content, state)

    assert flow.current_page().id == "p2"
    assert flow.state.page_submitted is False
    assert flow.state.question_index == 1
