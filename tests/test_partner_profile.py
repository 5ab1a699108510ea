import pytest

from cakecompiler.domain.profile import (
    PartnerProfile,
    PreferenceHistoryEntry,
    PreferenceSource,
)
from cakecompiler.domain.vector import PreferenceDimension, PreferenceVector
from cakecompiler.learning.learner import PreferenceLearner
from cakecompiler.serendipity.detector import SerendipityDetector


def test_create_seeds_a_single_initial_entry():
    profile = PartnerProfile.create("p-1", "Sam", PreferenceVector.of(0.2, 0.8, 0.5, 0.5, 0.5))

    assert profile.update_count == 1
    assert profile.preference_history.entries[0].source == PreferenceSource.INITIAL
    assert profile.preference_history.average_preference() == profile.current_preference
    assert profile.most_recent_learning() is None
    assert PartnerProfile.create("p-2", "Kim").current_preference == PreferenceVector.neutral()


def test_confidence_grows_with_history_depth():
    profile = PartnerProfile.create("p-1", "Sam")
    assert profile.overall_confidence() == pytest.approx(0.07)

    for _ in range(12):
        profile = profile.derive(
            PreferenceVector.neutral(),
            PreferenceHistoryEntry(preference=PreferenceVector.neutral(), source=PreferenceSource.USER_INPUT),
        )

    # History confidence saturates at ten entries.
    assert profile.update_count == 13
    assert profile.overall_confidence() == pytest.approx(0.7)


def test_confidence_is_zero_without_history():
    profile = PartnerProfile(id="p-1", name="Sam", current_preference=PreferenceVector.neutral())

    assert set(profile.confidence_per_dimension().values()) == {0.0}
    assert profile.overall_confidence() == 0.0


def test_learning_entries_boost_per_axis_confidence():
    profile = PartnerProfile.create("p-1", "Sam")
    event = SerendipityDetector().detect(PreferenceVector.zero(), PreferenceVector.of(1.0, 1.0, 0.0, 0.0, 0.0))
    learned = PreferenceLearner().learn_from_serendipity(profile, event).updated_profile

    confidence = learned.confidence_per_dimension()
    assert confidence[PreferenceDimension.SWEETNESS] == pytest.approx(0.14 + 0.3)
    assert confidence[PreferenceDimension.TEXTURE] == pytest.approx(0.14)
    assert learned.most_recent_learning().dimension in (
        PreferenceDimension.SWEETNESS,
        PreferenceDimension.SOURNESS,
    )
    assert learned.learning_entries[0].update_magnitude == pytest.approx(0.3)
    assert learned.learning_entries[0].describe() == "Learned: sweetness preference increased from 0.50 to 0.80"


def test_history_queries():
    profile = PartnerProfile.create("p-1", "Sam", PreferenceVector.zero())
    profile = profile.derive(
        PreferenceVector.of(1.0, 1.0, 1.0, 1.0, 1.0),
        PreferenceHistoryEntry(
            preference=PreferenceVector.of(1.0, 1.0, 1.0, 1.0, 1.0),
            source=PreferenceSource.OBSERVED_CHOICE,
            cake_id="opera",
        ),
    )

    assert profile.preference_history.average_preference() == PreferenceVector.neutral()
    observed = profile.preference_history.entries_from_source(PreferenceSource.OBSERVED_CHOICE)
    assert [e.cake_id for e in observed] == ["opera"]
    assert profile.preference_history.entries_from_source(PreferenceSource.SERENDIPITY) == []
    assert profile.updated_at >= profile.created_at
