"""Tests for the metadata API clients (network mocked)."""
import unittest
from unittest.mock import MagicMock, patch

import requests

from bibliography_manager.api import (
    CSL_JSON_MIME,
    CrossRefAPI,
    GoogleBooksAPI,
    OpenLibraryAPI,
    WebPageAPI,
    build_user_agent,
    clean_doi,
    clean_isbn,
    warn_missing_email,
)


def make_response(status_code=200, json_data=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = text
    if status_code >= 400:
        error = requests.exceptions.HTTPError(f"{status_code} Error")
        error.response = response
        response.raise_for_status.side_effect = error
    else:
        response.raise_for_status.return_value = None
    response.headers = {}
    return response


class TestHelpers(unittest.TestCase):
    def test_clean_doi(self):
        self.assertEqual(clean_doi("https://doi.org/10.1000/xyz"), "10.1000/xyz")
        self.assertEqual(clean_doi("http://dx.doi.org/10.1000/xyz"), "10.1000/xyz")
        self.assertEqual(clean_doi("doi: 10.1000/xyz "), "10.1000/xyz")
        self.assertEqual(clean_doi("10.1000/xyz"), "10.1000/xyz")

    def test_clean_isbn(self):
        self.assertEqual(clean_isbn("978-0-13-468599-1"), "9780134685991")
        self.assertEqual(clean_isbn(" 0 262 51087 1 "), "0262510871")

    def test_user_agent(self):
        self.assertTrue(build_user_agent("me@example.com").startswith(
            "Bibliography-Manager (mailto:me@example.com) python-requests/"))
        self.assertNotIn("mailto", build_user_agent(""))

    def test_warn_missing_email(self):
        with self.assertLogs("bibliography_manager.api", level="WARNING") as logs:
            self.assertTrue(warn_missing_email(""))
        self.assertIn("No Crossref email provided", logs.output[0])
        self.assertFalse(warn_missing_email("me@example.com"))


class TestCrossRefAPI(unittest.TestCase):
    def setUp(self):
        self.api = CrossRefAPI("me@example.com")

    @patch('bibliography_manager.api.requests.get')
    def test_lookup_doi(self, mock_get):
        mock_get.return_value = make_response(json_data={
            "type": "article-journal",
            "title": ["Main title"],
            "subtitle": ["A subtitle"],
            "container-title": ["Journal of Things"],
            "DOI": "10.1000/xyz",
        })

        result = self.api.lookup_doi("https://doi.org/10.1000/xyz")

        self.assertEqual(result["title"], "Main title: A subtitle")
        self.assertEqual(result["container-title"], "Journal of Things")
        self.assertNotIn("subtitle", result)
        url = mock_get.call_args[0][0]
        self.assertEqual(
            url, f"https://api.crossref.org/works/10.1000/xyz/transform/{CSL_JSON_MIME}")
        self.assertEqual(mock_get.call_args[1]["params"], {"mailto": "me@example.com"})
        self.assertIn("mailto:me@example.com", mock_get.call_args[1]["headers"]["User-Agent"])

    @patch('bibliography_manager.api.requests.get')
    def test_falls_back_to_doi_org(self, mock_get):
        mock_get.side_effect = [
            make_response(status_code=404),
            make_response(json_data={"type": "dataset", "title": "Data"}),
        ]

        result = self.api.lookup_doi("10.5061/dryad.abc")

        self.assertEqual(result["title"], "Data")
        second_call = mock_get.call_args_list[1]
        self.assertEqual(second_call[0][0], "https://doi.org/10.5061/dryad.abc")
        self.assertEqual(second_call[1]["headers"]["Accept"], CSL_JSON_MIME)

    @patch('bibliography_manager.api.requests.get')
    def test_not_found(self, mock_get):
        mock_get.return_value = make_response(status_code=404)
        self.assertIsNone(self.api.lookup_doi("10.1000/missing"))

    @patch('bibliography_manager.api.requests.get')
    def test_server_errors_are_retried(self, mock_get):
        mock_get.side_effect = [
            make_response(status_code=503),
            make_response(json_data={"title": "Recovered"}),
        ]
        self.assertEqual(self.api.lookup_doi("10.1000/xyz")["title"], "Recovered")
        self.assertEqual(mock_get.call_count, 2)

    @patch('bibliography_manager.api.requests.get')
    def test_connection_errors_give_up(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("offline")
        self.assertIsNone(self.api.lookup_doi("10.1000/xyz"))
        # three attempts for the CrossRef URL, three for doi.org
        self.assertEqual(mock_get.call_count, 6)

    def test_empty_doi(self):
        self.assertIsNone(self.api.lookup_doi("https://doi.org/"))


class TestGoogleBooksAPI(unittest.TestCase):
    @patch('bibliography_manager.api.requests.get')
    def test_lookup_isbn(self, mock_get):
        mock_get.return_value = make_response(json_data={"items": [{"volumeInfo": {
            "title": "Clean Code",
            "subtitle": "A Handbook",
            "authors": ["Robert C. Martin"],
            "publishedDate": "2008-08-01",
            "publisher": "Prentice Hall",
            "pageCount": 464,
            "industryIdentifiers": [{"type": "ISBN_13", "identifier": "9780132350884"}],
        }}]})

        result = GoogleBooksAPI().lookup_isbn("978-0-13-235088-4")

        self.assertEqual(mock_get.call_args[1]["params"]["q"], "isbn:9780132350884")
        self.assertEqual(result["type"], "book")
        self.assertEqual(result["title"], "Clean Code: A Handbook")
        self.assertEqual(result["author"], [{"family": "Martin", "given": "Robert C."}])
        self.assertEqual(result["issued"], {"date-parts": [[2008, 8, 1]]})
        self.assertEqual(result["ISBN"], "9780132350884")
        self.assertEqual(result["number-of-pages"], "464")

    @patch('bibliography_manager.api.requests.get')
    def test_no_items(self, mock_get):
        mock_get.return_value = make_response(json_data={"totalItems": 0})
        self.assertIsNone(GoogleBooksAPI().lookup_isbn("0000000000"))


class TestOpenLibraryAPI(unittest.TestCase):
    @patch('bibliography_manager.api.requests.get')
    def test_lookup_isbn(self, mock_get):
        mock_get.return_value = make_response(json_data={"ISBN:0262510871": {
            "title": "Structure and Interpretation of Computer Programs",
            "authors": [{"name": "Harold Abelson"}, {"name": "Gerald Jay Sussman"}],
            "publish_date": "1996",
            "publishers": [{"name": "MIT Press"}],
            "publish_places": [{"name": "Cambridge, Mass"}],
        }})

        result = OpenLibraryAPI().lookup_isbn("0-262-51087-1")

        params = mock_get.call_args[1]["params"]
        self.assertEqual(params["bibkeys"], "ISBN:0262510871")
        self.assertEqual(params["jscmd"], "data")
        self.assertEqual(result["author"][1], {"family": "Sussman", "given": "Gerald Jay"})
        self.assertEqual(result["issued"], {"date-parts": [[1996]]})
        self.assertEqual(result["publisher"], "MIT Press")
        self.assertEqual(result["publisher-place"], "Cambridge, Mass")

    @patch('bibliography_manager.api.requests.get')
    def test_missing_key(self, mock_get):
        mock_get.return_value = make_response(json_data={})
        self.assertIsNone(OpenLibraryAPI().lookup_isbn("0262510871"))


class TestWebPageAPI(unittest.TestCase):
    ARTICLE_HTML = """
    <html><head>
      <meta name="citation_title" content="On Testing">
      <meta name="citation_author" content="Smith, John">
      <meta name="citation_author" content="Jane Doe">
      <meta name="citation_publication_date" content="2021/05/03">
      <meta name="citation_journal_title" content="Journal of Testing">
      <meta name="citation_volume" content="4">
      <meta name="citation_firstpage" content="10">
      <meta name="citation_lastpage" content="20">
      <meta name="citation_doi" content="doi:10.1000/test">
    </head><body></body></html>
    """

    def test_parse_article_meta_tags(self):
        result = WebPageAPI.parse_html(self.ARTICLE_HTML, "https://example.com/a")
        self.assertEqual(result["type"], "article-journal")
        self.assertEqual(result["title"], "On Testing")
        self.assertEqual(result["author"], [
            {"family": "Smith", "given": "John"},
            {"family": "Doe", "given": "Jane"},
        ])
        self.assertEqual(result["issued"], {"date-parts": [[2021]]})
        self.assertEqual(result["container-title"], "Journal of Testing")
        self.assertEqual(result["page"], "10-20")
        self.assertEqual(result["DOI"], "10.1000/test")
        self.assertEqual(result["URL"], "https://example.com/a")

    def test_parse_open_graph(self):
        html = """<html><head>
          <meta property="og:title" content="A Blog Post">
          <meta property="og:site_name" content="Example Blog">
          <meta property="og:description" content="What it is about">
        </head></html>"""
        result = WebPageAPI.parse_html(html, "https://blog.example.com/post")
        self.assertEqual(result["type"], "webpage")
        self.assertEqual(result["container-title"], "Example Blog")
        self.assertEqual(result["abstract"], "What it is about")

    def test_parse_without_title(self):
        self.assertIsNone(WebPageAPI.parse_html("<html><head></head></html>", "https://x.org"))

    @patch('bibliography_manager.api.requests.get')
    def test_lookup_url(self, mock_get):
        mock_get.return_value = make_response(text=self.ARTICLE_HTML)
        result = WebPageAPI().lookup_url("https://example.com/a")
        self.assertEqual(result["title"], "On Testing")


if __name__ == "__main__":
    unittest.main()
