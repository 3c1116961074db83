import random
from collections import Counter
from datetime import timedelta

from conftest import T0, make_result
from data_engineer_cbt.models.question_model import ALL_TOPICS
from data_engineer_cbt.services.adaptive_allocator import AdaptiveAllocator, AllocationConfig
from data_engineer_cbt.services.trend_analyzer import analyze_topic_progress

WEAK = "Incremental Data Processing"


def _scores(weak_score=50, others=80):
    return {t: (weak_score if t == WEAK else others) for t in ALL_TOPICS}


def test_empty_history_splits_evenly(question_store):
    allocator = AdaptiveAllocator(question_store, rng=random.Random(7))

    analysis = allocator.analyze_performance([])
    questions = allocator.generate_question_set([])

    assert not analysis.has_exam_history
    assert [a.question_count for a in analysis.recommended_allocation] == [12] * 5
    assert len(questions) == 60
    counts = Counter(q.topic for q in questions)
    assert all(abs(counts[t] - 60 / 5) <= 1 for t in ALL_TOPICS)


def test_even_split_remainder_goes_to_first_topics(question_store):
    allocator = AdaptiveAllocator(question_store, AllocationConfig(total_questions=62))
    counts = [a.question_count for a in allocator.analyze_performance([]).recommended_allocation]
    assert counts == [13, 13, 12, 12, 12]


def test_one_weak_topic_gets_reserved_share(question_store):
    allocator = AdaptiveAllocator(question_store, rng=random.Random(1))
    history = [make_result(_scores(), T0, per_topic=10)]

    analysis = allocator.analyze_performance(history)
    by_topic = {a.topic: a for a in analysis.recommended_allocation}

    assert analysis.weak_areas == [WEAK]
    assert set(analysis.strong_areas) == set(ALL_TOPICS) - {WEAK}
    assert by_topic[WEAK].question_count == 36
    assert by_topic[WEAK].priority == "high"
    assert all(by_topic[t].question_count == 6 for t in ALL_TOPICS if t != WEAK)
    assert all(by_topic[t].priority == "low" for t in ALL_TOPICS if t != WEAK)
    assert analysis.recommended_allocation[0].topic == WEAK

    questions = allocator.generate_question_set(history)
    assert len(questions) == 60
    assert Counter(q.topic for q in questions)[WEAK] == 36


def test_weak_topics_prefer_challenging_questions(question_store):
    allocator = AdaptiveAllocator(
        question_store, AllocationConfig(total_questions=20), rng=random.Random(3)
    )
    history = [make_result(_scores(), T0, per_topic=10)]

    questions = allocator.generate_question_set(history)
    weak = [q for q in questions if q.topic == WEAK]

    assert len(weak) == 12
    assert all(q.difficulty in ("medium", "hard") for q in weak)


def test_no_weak_topics_splits_whole_total(question_store):
    allocator = AdaptiveAllocator(question_store)
    history = [make_result(_scores(weak_score=70, others=70), T0, per_topic=10)]

    analysis = allocator.analyze_performance(history)

    assert analysis.weak_areas == []
    assert sum(a.question_count for a in analysis.recommended_allocation) == 60
    assert all(a.priority == "medium" for a in analysis.recommended_allocation)


def test_all_topics_weak_keeps_requested_total(question_store):
    allocator = AdaptiveAllocator(question_store, rng=random.Random(2))
    scores = {t: 50 for t in ALL_TOPICS}
    scores[WEAK] = 30
    history = [make_result(scores, T0, per_topic=10)]

    analysis = allocator.analyze_performance(history)

    assert set(analysis.weak_areas) == set(ALL_TOPICS)
    assert sum(a.question_count for a in analysis.recommended_allocation) == 60
    assert all(a.priority == "high" for a in analysis.recommended_allocation)
    assert analysis.recommended_allocation[0].topic == WEAK
    assert len(allocator.generate_question_set(history)) == 60


def test_only_recent_window_counts(question_store):
    allocator = AdaptiveAllocator(question_store)
    history = [make_result(_scores(weak_score=10), T0, per_topic=10)] + [
        make_result(_scores(weak_score=90), T0 + timedelta(days=d), per_topic=10)
        for d in (1, 2, 3)
    ]
    assert allocator.analyze_performance(history).weak_areas == []


def test_seeded_rng_is_deterministic(question_store):
    first = AdaptiveAllocator(question_store, rng=random.Random(42)).generate_question_set([])
    second = AdaptiveAllocator(question_store, rng=random.Random(42)).generate_question_set([])
    assert [q.id for q in first] == [q.id for q in second]


def test_short_inventory_is_tolerated(question_store):
    allocator = AdaptiveAllocator(question_store, AllocationConfig(total_questions=250))
    questions = allocator.generate_question_set([])
    assert len(questions) == 5 * 42
    assert len({q.id for q in questions}) == len(questions)


def test_distribution_question_set(question_store):
    allocator = AdaptiveAllocator(question_store, rng=random.Random(5))
    questions = allocator.generate_distribution_question_set({"Data Governance": 4, WEAK: 2})
    assert Counter(q.topic for q in questions) == {"Data Governance": 4, WEAK: 2}


def test_should_reduce_allocation(question_store):
    allocator = AdaptiveAllocator(question_store)
    strong = [
        make_result({WEAK: s}, T0 + timedelta(days=i), per_topic=10)
        for i, s in enumerate([60, 80, 90, 80])
    ]
    mixed = strong[:3] + [make_result({WEAK: 70}, T0 + timedelta(days=9), per_topic=10)]

    assert allocator.should_reduce_allocation(WEAK, strong)
    assert not allocator.should_reduce_allocation(WEAK, mixed)
    assert not allocator.should_reduce_allocation("Data Governance", strong)


def test_recommendations_tiers(question_store):
    allocator = AdaptiveAllocator(question_store)
    history = [
        make_result(_scores(weak_score=50, others=80), T0, per_topic=10),
        make_result(_scores(weak_score=50, others=90), T0 + timedelta(days=1), per_topic=10),
    ]
    analysis = allocator.analyze_performance(history)
    recs = allocator.generate_recommendations(analysis, analyze_topic_progress(history))

    assert recs[0].topic == WEAK
    assert recs[0].priority == "high"
    assert recs[0].recommended_questions == 25
    assert "Requires immediate attention - no recent improvement" in recs[0].focus_areas
    assert "Merge operations and UPSERT patterns" in recs[0].focus_areas
    low = [r for r in recs if r.topic != WEAK]
    assert all(r.priority == "low" and r.recommended_questions == 5 for r in low)
    assert recs[-1].priority == "low"
