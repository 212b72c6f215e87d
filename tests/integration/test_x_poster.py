import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

from core.config import PosterConfig
from core.exceptions import PostingError
from core.models.summary import ArticleAnalysis, ArticleBatch
from integrations.x_poster import XPoster, format_post, select_next


def article(thread_id: int, total_posts: int, body: str = "Short article body.") -> ArticleAnalysis:
    return ArticleAnalysis(
        thread_id=thread_id, headline="H", article=body, analyzed_comments=5,
        flagged_comments=0, percentage=0.0, total_posts=total_posts, analyzed_posts=5,
    )


def configured() -> PosterConfig:
    return PosterConfig(consumer_key="ck", consumer_secret="cs", access_token="at", access_token_secret="as")


class FakeSummaryStore:
    def __init__(self, articles):
        self.articles = articles

    def load_latest(self):
        if self.articles is None:
            return None
        return SimpleNamespace(batch=ArticleBatch(articles=self.articles))


def ok_response(tweet_id: str = "1789"):
    response = MagicMock(ok=True, status_code=201, text="")
    response.json.return_value = {"data": {"id": tweet_id, "text": "..."}}
    return response


def make_poster(tmp_path, clock, articles, config=None, response=None):
    session = MagicMock()
    session.post.return_value = response or ok_response()
    sleep = MagicMock()
    poster = XPoster(config or configured(), tmp_path / "posted.json", FakeSummaryStore(articles),
                     session=session, sleep=sleep, clock=clock)
    return poster, session, sleep


def test_format_post_fits_weighted_length():
    config = PosterConfig()
    post = format_post(article(42, 10, body="word " * 120), config)

    url = f"{config.thread_url_base}42"
    assert post.endswith(f" {url}{config.suffix}")
    body = post[:-(len(url) + len(config.suffix) + 1)]
    assert body.endswith("...")
    assert len(body) + 1 + config.url_length + len(config.suffix) <= config.max_length


def test_format_post_keeps_short_body():
    config = PosterConfig()

    assert format_post(article(7, 10), config) == f"Short article body. {config.thread_url_base}7{config.suffix}"


def test_select_next_prefers_fewest_posts():
    articles = [article(1, 300), article(2, 80), article(3, 120)]

    assert select_next(articles, set()).thread_id == 2
    assert select_next(articles, {2}).thread_id == 3
    assert select_next(articles, {1, 2, 3}) is None


def test_post_next_records_ledger(tmp_path, clock):
    poster, session, _ = make_poster(tmp_path, clock, [article(1, 300), article(2, 80)])

    entry = poster.post_next()

    assert entry == {"threadId": 2, "timestamp": clock(), "tweetId": "1789"}
    kwargs = session.post.call_args.kwargs
    assert kwargs["json"]["text"].startswith("Short article body.")
    assert kwargs["timeout"] == 30
    assert kwargs["auth"] is not None
    assert json.loads((tmp_path / "posted.json").read_text(encoding="utf-8")) == [entry]
    assert poster.next_article().thread_id == 1


def test_consecutive_posts_are_spaced(tmp_path, clock):
    poster, _, sleep = make_poster(tmp_path, clock, [article(1, 300), article(2, 80)])

    poster.post_next()
    poster.post_next()

    sleep.assert_called_once_with(18.0)
    assert [e["threadId"] for e in poster.load_posted()] == [2, 1]
    assert poster.post_next() is None


def test_error_status_raises_and_leaves_ledger(tmp_path, clock):
    response = MagicMock(ok=False, status_code=403, text="forbidden")
    poster, _, _ = make_poster(tmp_path, clock, [article(1, 10)], response=response)

    with pytest.raises(PostingError) as excinfo:
        poster.post_next()

    assert excinfo.value.context["status"] == 403
    assert poster.load_posted() == []


def test_transport_error_raises(tmp_path, clock):
    poster, session, _ = make_poster(tmp_path, clock, [article(1, 10)])
    session.post.side_effect = requests.ConnectionError("down")

    with pytest.raises(PostingError):
        poster.post_next()


def test_missing_credentials(tmp_path, clock):
    poster, session, _ = make_poster(tmp_path, clock, [article(1, 10)], config=PosterConfig())

    assert not poster.is_configured
    with pytest.raises(PostingError):
        poster.post_next()
    session.post.assert_not_called()


def test_preview_without_summary(tmp_path, clock):
    poster, _, _ = make_poster(tmp_path, clock, None)

    assert poster.preview() is None
    assert poster.post_next() is None
