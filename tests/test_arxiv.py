"""
Tests — arXiv URL helpers.
"""

import pytest

from anning.utils.arxiv import is_valid_arxiv_pdf_url, normalize_arxiv_pdf_url


class TestNormalize:
    @pytest.mark.parametrize("raw, expected", [
        ("https://arxiv.org/abs/2106.09685", "https://arxiv.org/pdf/2106.09685.pdf"),
        ("https://arxiv.org/abs/2106.09685v2", "https://arxiv.org/pdf/2106.09685v2.pdf"),
        ("https://arxiv.org/pdf/2106.09685", "https://arxiv.org/pdf/2106.09685.pdf"),
        ("  https://arxiv.org/pdf/2106.09685.pdf  ", "https://arxiv.org/pdf/2106.09685.pdf"),
        ("https://example.com/paper", "https://example.com/paper"),
        ("", ""),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_arxiv_pdf_url(raw) == expected


class TestValidate:
    @pytest.mark.parametrize("url", [
        "https://arxiv.org/pdf/2106.09685.pdf",
        "https://ARXIV.org/pdf/2106.09685v3.PDF",
    ])
    def test_accepts_direct_pdf_links(self, url):
        assert is_valid_arxiv_pdf_url(url)

    @pytest.mark.parametrize("url", [
        "http://arxiv.org/pdf/2106.09685.pdf",
        "https://arxiv.org/abs/2106.09685",
        "https://export.arxiv.org/pdf/2106.09685.pdf",
        "https://arxiv.org/pdf/2106.09685",
        "not a url",
        "",
        None,
    ])
    def test_rejects_everything_else(self, url):
        assert not is_valid_arxiv_pdf_url(url)
