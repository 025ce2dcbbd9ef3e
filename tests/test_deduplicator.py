import pytest

from imagesearch_app.search.deduplicator import (
    Deduplicator, normalize_url, similarity_ratio, normalize_title,
)
from imagesearch_app.search.models import CopyrightInfo
from imagesearch_app.search.normalizer import Normalizer
from conftest import raw


def _norm(*raws):
    return Normalizer().normalize_all(raws)


@pytest.mark.parametrize("url", [
    "https://www.Example.com/photos/cat_800x600.JPG?w=1&h=2",
    "http://upload.wikimedia.org/wikipedia/commons/thumb/a/ab/Cat.jpg/300px-Cat.jpg",
    "https://a.com/x/thumb/y/thumb/z/pic.png",
    "https://a.com/img_10x10.jpg_20x20.jpg",
    "",
])
def test_normalize_url_is_idempotent(url):
    once = normalize_url(url)
    assert normalize_url(once) == once


def test_normalize_url_rules():
    assert normalize_url("https://www.example.com/cat_800x600.jpg?size=large") == "example.com/cat.jpg"
    assert normalize_url("http://example.com/a.png&foo=bar") == "example.com/a.png"
    assert normalize_url("https://example.com/thumb/abc/cat.jpg") == "example.com/cat.jpg"


def test_similarity_ratio_identity_and_range():
    for s in ["", "a", "Cat Picture", "example.com/cat.jpg"]:
        assert similarity_ratio(s, s) == 1.0
    assert similarity_ratio("", "abc") == 0.0
    assert similarity_ratio("ABC", "abc") == 1.0
    assert similarity_ratio("abcd", "abxd") == 0.75
    assert similarity_ratio("abc", "abcdef") == 0.5
    value = similarity_ratio("example.com/a.jpg", "other.org/zzz.png")
    assert 0.0 <= value <= 1.0


def test_identical_keys_merge_with_union_of_sources():
    results = _norm(
        raw("Pexels", "https://images.pexels.com/1.jpg?auto=compress", "Cat", 1000, 800),
        raw("Bing Images", "https://images.pexels.com/1.jpg", "Cat on a sofa", 1000, 800),
        raw("DuckDuckGo", "https://www.images.pexels.com/1.jpg", "Cat", 1000, 800),
    )
    unique = Deduplicator().deduplicate(results)

    assert len(unique) == 1
    merged = unique[0]
    assert merged.sources == ["Pexels", "Bing Images", "DuckDuckGo"]
    assert merged.source_count == 3
    assert merged.title == "Cat (Pexels, Bing Images, DuckDuckGo)"
    assert merged.original_title == "Cat"
    assert merged.original_source == "Pexels"


def test_size_suffix_variant_merges_into_two_sources():
    results = _norm(
        raw("Unsplash", "https://cdn.example.com/photo_800x600.jpg", "Sunset", 800, 600),
        raw("Google Images", "https://cdn.example.com/photo.jpg", "Sunset - sunsets", 800, 600),
    )
    unique = Deduplicator().deduplicate(results)
    assert len(unique) == 1
    assert unique[0].source_count == 2
    assert unique[0].sources == ["Unsplash", "Google Images"]


def test_larger_image_replaces_download_url():
    results = _norm(
        raw("Bing Images", "https://example.com/cat.jpg", "cat", 640, 480),
        raw("Google Images", "https://example.com/cat.jpg?full=1", "cat", 1920, 1080),
    )
    merged = Deduplicator().deduplicate(results)[0]
    assert merged.download_url == "https://example.com/cat.jpg?full=1"
    assert (merged.width, merged.height) == (1920, 1080)


def test_premium_source_overrides_even_when_smaller():
    results = _norm(
        raw("Google Images", "https://example.com/cat.jpg", "cat", 4000, 3000),
        raw("Pixabay", "https://example.com/cat.jpg?pixabay", "cat", 640, 480),
    )
    merged = Deduplicator().deduplicate(results)[0]
    assert merged.download_url == "https://example.com/cat.jpg?pixabay"
    assert (merged.width, merged.height) == (640, 480)


def test_smaller_non_premium_keeps_existing_image():
    results = _norm(
        raw("Google Images", "https://example.com/cat.jpg", "cat", 4000, 3000),
        raw("Bing Images", "https://example.com/cat.jpg?small", "cat", 640, 480),
    )
    merged = Deduplicator().deduplicate(results)[0]
    assert merged.download_url == "https://example.com/cat.jpg"
    assert merged.sources == ["Google Images", "Bing Images"]


def test_merge_upgrades_copyright_and_photographer():
    results = _norm(
        raw("Bing Images", "https://example.com/cat.jpg", "cat", photographer="Various"),
        raw("Unsplash", "https://example.com/cat.jpg", "cat", photographer="Ann",
            copyright={"status": "free", "license": "Unsplash License"}),
    )
    merged = Deduplicator().deduplicate(results)[0]
    assert merged.copyright.status == "free"
    assert merged.copyright.license == "Unsplash License"
    assert merged.photographer == "Ann"


def test_same_source_duplicate_is_dropped_without_changes():
    results = _norm(
        raw("Pexels", "https://example.com/cat.jpg", "cat", 100, 100),
        raw("Pexels", "https://example.com/cat.jpg", "cat again", 5000, 5000),
    )
    dedup = Deduplicator()
    unique = dedup.deduplicate(results)
    assert len(unique) == 1
    assert unique[0].sources == ["Pexels"]
    assert unique[0].title == "cat"
    assert unique[0].width == 100
    assert dedup.last_stats.same_source_dropped == 1


def test_title_similarity_only_within_same_original_source():
    long_title = "A very long descriptive title about cats"
    same_source = _norm(
        raw("Bing Images", "https://a.example.com/one.jpg", long_title),
        raw("Bing Images", "https://zzz.other.org/two.png", long_title),
    )
    assert len(Deduplicator().deduplicate(same_source)) == 1

    cross_source = _norm(
        raw("Bing Images", "https://a.example.com/one.jpg", long_title),
        raw("Google Images", "https://zzz.other.org/two.png", long_title),
    )
    assert len(Deduplicator().deduplicate(cross_source)) == 2


def test_short_titles_never_match_on_title():
    results = _norm(
        raw("Bing Images", "https://a.example.com/one.jpg", "cat"),
        raw("Bing Images", "https://zzz.other.org/two.png", "cat"),
    )
    assert len(Deduplicator().deduplicate(results)) == 2


def test_distinct_urls_stay_separate_and_keep_order():
    results = _norm(
        raw("Pexels", "https://images.pexels.com/a.jpg", "one"),
        raw("Pixabay", "https://cdn.pixabay.com/b.jpg", "two"),
        raw("Unsplash", "https://images.unsplash.com/c.jpg", "three"),
    )
    unique = Deduplicator().deduplicate(results)
    assert [r.source for r in unique] == ["Pexels", "Pixabay", "Unsplash"]
    assert all(r.source_count == len(r.sources) == 1 for r in unique)


def test_thresholds_are_configurable():
    results = _norm(
        raw("Bing Images", "https://example.com/cats/a1.jpg", "x"),
        raw("Google Images", "https://example.com/cats/b2.jpg", "y"),
    )
    assert len(Deduplicator().deduplicate(results)) == 2
    assert len(Deduplicator(url_threshold=0.8).deduplicate(results)) == 1


def test_stats_report_before_and_after():
    results = _norm(
        raw("Pexels", "https://example.com/cat.jpg", "cat"),
        raw("Bing Images", "https://example.com/cat.jpg", "cat"),
        raw("Bing Images", "https://example.com/dog.jpg", "dog"),
    )
    unique, stats = Deduplicator().deduplicate_with_stats(results)
    assert stats.before == 3
    assert stats.after == len(unique) == 2
    assert stats.duplicates_removed == 1
    assert stats.merged == 1


def test_normalize_title_truncates():
    assert normalize_title("  ABC  ") == "abc"
    assert len(normalize_title("x" * 300)) == 100
    assert normalize_title(None) == ""


def test_copyright_default_is_not_free():
    assert not CopyrightInfo().is_free
