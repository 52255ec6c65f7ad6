from later.services.text_parse import (
    extract_tags,
    extract_urls,
    favicon_url,
    format_file_size,
    is_likely_url,
)


def test_is_likely_url():
    assert is_likely_url("https://example.com/a")
    assert is_likely_url(" http://example.com ")
    assert not is_likely_url("ftp://example.com")
    assert not is_likely_url("example.com")
    assert not is_likely_url("")
    assert not is_likely_url(None)


def test_extract_urls_dedupes_in_order():
    text = 'see https://a.example/x and "http://b.example" then https://a.example/x <https://c.example>'
    assert extract_urls(text) == ["https://a.example/x", "http://b.example", "https://c.example"]


def test_extract_tags():
    text = "#Work plan for #home-office and#not this, again #work #snake_case"
    assert extract_tags(text) == ["work", "home-office", "snake_case"]
    assert extract_tags(None) == []


def test_favicon_url():
    assert favicon_url("https://news.example.org/path?q=1") == (
        "https://www.google.com/s2/favicons?domain=news.example.org&sz=64"
    )
    assert favicon_url("not a url") is None


def test_format_file_size():
    assert format_file_size(None) == ""
    assert format_file_size(512) == "512 B"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(5 * 1024 * 1024) == "5.0 MB"


def test_duplicates_collapse():
    assert extract_tags("ship #v1 and #v1 again") == ["v1"]
    assert extract_urls("see https://a.com/x and https://a.com/x") == ["https://a.com/x"]
