import pytest

from core.domain import EpisodeDescriptor, ProgressRecord, make_episode_id


def test_episode_id_format_and_show_id():
    episode_id = make_episode_id("10716", 2, 5)

    assert episode_id == "10716-s2-e5"
    assert EpisodeDescriptor(episode_id=episode_id, audio_url="x.mp3").show_id == "10716"


def test_descriptor_uses_camel_case_json():
    descriptor = EpisodeDescriptor("p-s1-e1", "a.mp3", "Pilot", 1, 1, "Show", "img.png")

    data = descriptor.to_dict()

    assert data["episodeId"] == "p-s1-e1"
    assert data["showImage"] == "img.png"
    assert EpisodeDescriptor.from_dict(data) == descriptor


def test_descriptor_requires_id_and_audio():
    with pytest.raises(ValueError):
        EpisodeDescriptor.from_dict({"episodeId": "x"})
    with pytest.raises(ValueError):
        EpisodeDescriptor.from_dict("not a dict")


def test_progress_record_tolerates_bad_fields():
    record = ProgressRecord.from_dict({"currentTime": "abc", "duration": 120, "lastListened": "yesterday"})

    assert record.current_time == 0.0
    assert record.duration == 120.0
    assert record.fraction == 0.0
