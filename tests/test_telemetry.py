from treekde.telemetry import KDE_EVALUATION_SCHEMA, KDE_EVALUATION_SCHEMA_ID, EvaluationStats


def test_evaluation_record_carries_schema_fields():
    stats = EvaluationStats(
        traversal="depth_first",
        kernel="gaussian",
        metric="euclidean",
        bandwidth=1.0,
        rel_error=0.05,
        abs_error=0.0,
        num_queries=4,
        num_references=9,
        base_cases=12,
        scores=5,
        prunes=2,
        max_error_bound=0.01,
        traversal_ms=0.3,
    )

    payload = stats.to_dict()

    assert payload["schema_id"] == KDE_EVALUATION_SCHEMA_ID
    assert set(KDE_EVALUATION_SCHEMA["required"]) <= set(payload)
    assert payload["leaf_pairs"] == 0
