from commentary.comments.domain.markup import MarkdownRenderer


def test_raw_html_is_not_rendered():
	html = MarkdownRenderer().render("<script>alert(1)</script> & *hi*")
	assert "<script>" not in html
	assert "&amp;" in html
	assert "<em>hi</em>" in html


def test_fenced_code_and_line_breaks():
	html = MarkdownRenderer().render("line one\nline two\n\n```\ncode\n```")
	assert "<br" in html
	assert "<code>code" in html


def test_javascript_links_lose_their_target():
	html = MarkdownRenderer().render("[click](javascript:alert(document.cookie))")
	assert "javascript:" not in html
	assert "click" in html


def test_http_links_are_kept_with_rel():
	html = MarkdownRenderer().render("[site](https://example.com/a)")
	assert 'href="https://example.com/a"' in html
	assert "nofollow" in html


def test_code_spans_are_escaped_once():
	html = MarkdownRenderer().render("`a && b < c`")
	assert "<code>a &amp;&amp; b &lt; c</code>" in html


def test_disallowed_tags_are_dropped():
	assert "<img" not in MarkdownRenderer().render("![x](https://example.com/x.png)")
