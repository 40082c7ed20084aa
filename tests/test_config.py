from pathlib import Path

import pytest

from folio.config import DEFAULT_CONFIG, enabled_plugins, load_config, load_data
from folio.errors import ConfigError

BLOG_CONFIG = """\
encoding: UTF-8
theme: minimal-mistakes-jekyll
title: "Double Ended Queue"
author: "Quentin Duval"
subtitle: "Functions In, Fictions Out"
baseurl: ''

plugins:
  - jekyll-feed
  - jekyll-sitemap
  - jekyll-paginate

titles_from_headings:
  strip_title: true
  collections: true

permalink: /blog/:year/:month/:day/:title:output_ext

show_excerpts: true
paginate: 6
paginate_path: "/blog/page:num/"

include:
  - _pages

comments:
  provider: "giscus"

defaults:
  - scope:
      path: ""
      type: posts
    values:
      layout: post
"""


def write_config(root: Path, text: str) -> Path:
    path = root / "_config.yml"
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_config_uses_defaults(tmp_path):
    config = load_config(tmp_path)
    assert config["permalink"] == "date"
    assert config["destination"] == "_site"
    assert config["paginate_path"] == "/page:num/"
    assert config["plugins"] == []
    assert config["port"] == 4000


def test_blog_config_is_layered_over_defaults(tmp_path):
    write_config(tmp_path, BLOG_CONFIG)
    config = load_config(tmp_path)
    assert config["title"] == "Double Ended Queue"
    assert config["paginate"] == 6
    assert config["include"] == ["_pages"]
    assert config["theme"] == "minimal-mistakes-jekyll"
    # unknown keys are kept for templates
    assert config["comments"] == {"provider": "giscus"}
    assert config["titles_from_headings"] == {
        "enabled": True,
        "strip_title": True,
        "collections": True,
    }
    assert config["feed"]["posts_limit"] == 10


def test_yaml_extension_is_accepted(tmp_path):
    (tmp_path / "_config.yaml").write_text("title: Alt\n", encoding="utf-8")
    assert load_config(tmp_path)["title"] == "Alt"


def test_overrides_win_and_none_is_ignored(tmp_path):
    write_config(tmp_path, "title: File\nurl: https://example.com\n")
    config = load_config(tmp_path, {"url": "http://localhost:4000", "title": None})
    assert config["url"] == "http://localhost:4000"
    assert config["title"] == "File"


def test_default_config_is_not_mutated(tmp_path):
    config = load_config(tmp_path)
    config["plugins"].append("jekyll-feed")
    config["feed"]["path"] = "atom.xml"
    assert DEFAULT_CONFIG["plugins"] == []
    assert DEFAULT_CONFIG["feed"]["path"] == "feed.xml"


def test_titles_from_headings_accepts_bool(tmp_path):
    write_config(tmp_path, "titles_from_headings: false\n")
    assert load_config(tmp_path)["titles_from_headings"] == {
        "enabled": False,
        "strip_title": False,
    }


@pytest.mark.parametrize(
    "text",
    [
        "title: [unclosed\n",
        "- just\n- a list\n",
        "plugins: jekyll-feed\n",
        "paginate: 0\n",
        "paginate: true\n",
        "paginate: 5\npaginate_path: /blog/\n",
        "feed: yes-please\n",
    ],
)
def test_invalid_config_raises(tmp_path, text):
    path = write_config(tmp_path, text)
    with pytest.raises(ConfigError) as excinfo:
        load_config(tmp_path)
    assert excinfo.value.source_path == path


def test_empty_config_file(tmp_path):
    write_config(tmp_path, "")
    assert load_config(tmp_path)["permalink"] == "date"


def test_enabled_plugins_splits_unknown():
    known, unknown = enabled_plugins(
        {"plugins": ["jekyll-feed", "jekyll-seo-tag", "jekyll-paginate"]}
    )
    assert known == ["jekyll-feed", "jekyll-paginate"]
    assert unknown == ["jekyll-seo-tag"]


def test_load_data_reads_yaml_and_json(tmp_path):
    data_dir = tmp_path / "_data"
    data_dir.mkdir()
    (data_dir / "navigation.yml").write_text("- title: Home\n  url: /\n", encoding="utf-8")
    (data_dir / "authors.json").write_text('{"qd": {"name": "Q"}}', encoding="utf-8")
    (data_dir / "notes.txt").write_text("ignored", encoding="utf-8")
    data = load_data(tmp_path)
    assert data == {
        "authors": {"qd": {"name": "Q"}},
        "navigation": [{"title": "Home", "url": "/"}],
    }


def test_load_data_missing_dir(tmp_path):
    assert load_data(tmp_path) == {}


def test_load_data_invalid_file(tmp_path):
    data_dir = tmp_path / "_data"
    data_dir.mkdir()
    bad = data_dir / "broken.json"
    bad.write_text("{nope", encoding="utf-8")
    with pytest.raises(ConfigError) as excinfo:
        load_data(tmp_path)
    assert excinfo.value.source_path == bad
