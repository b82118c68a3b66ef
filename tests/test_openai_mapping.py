from __future__ import annotations

from services.openai_mapping import image_count, published_models, ratio_for_size, resolution_for


def test_sizes_map_to_ratios() -> None:
    assert ratio_for_size("1792x1024") == "16:9"
    assert ratio_for_size("1024x1792") == "9:16"
    assert ratio_for_size("1024x1024") == "1:1"
    assert ratio_for_size("333x777") == "1:1"
    assert ratio_for_size(None) == "1:1"


def test_models_map_to_resolutions() -> None:
    assert resolution_for("z-image-pro", None) == "2K"
    assert resolution_for("z-image", "hd") == "1K"
    assert resolution_for("dall-e-3", None) == "2K"
    assert resolution_for("dall-e-2", None) == "1K"


def test_unknown_models_fall_back_to_quality() -> None:
    assert resolution_for("my-hd-model", None) == "2K"
    assert resolution_for("other", "high") == "2K"
    assert resolution_for("other", "HD") == "2K"
    assert resolution_for("other", "standard") == "1K"
    assert resolution_for(None, None) == "1K"


def test_image_count_is_clamped() -> None:
    assert image_count(None) == 1
    assert image_count(0) == 1
    assert image_count(3) == 3
    assert image_count(10) == 4


def test_published_models() -> None:
    models = published_models()
    assert [m.id for m in models] == ["z-image", "z-image-pro"]
    assert all(m.owned_by == "z-ai" and m.object == "model" for m in models)
