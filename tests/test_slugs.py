import re

import pytest

from repositories import StoreRepository
from slugs import SlugGenerator, slug_pattern, slugify


@pytest.mark.parametrize("name,expected", [
    ("Coffee Shop", "coffee-shop"),
    ("  Café   Déjà Vu! ", "cafe-deja-vu"),
    ("Tim's #1 Bakery", "tim-s-1-bakery"),
    ("!!!", ""),
])
def test_slugify(name, expected):
    assert slugify(name) == expected


def test_pattern_matches_base_and_numbered_suffix_only():
    pattern = re.compile(slug_pattern("coffee-shop"), re.IGNORECASE)
    assert pattern.search("coffee-shop")
    assert pattern.search("COFFEE-SHOP-12")
    assert not pattern.search("coffee-shops")
    assert not pattern.search("coffee-shop-north")
    assert not pattern.search("the-coffee-shop")


def test_pattern_escapes_regex_characters():
    pattern = re.compile(slug_pattern("c++"), re.IGNORECASE)
    assert pattern.search("c++-2")
    assert not pattern.search("cc-2")


def _insert(db, slug):
    return db["store"].insert_one({"name": slug, "slug": slug}).inserted_id


def test_first_slug_is_unsuffixed(db):
    assert SlugGenerator(StoreRepository(db)).generate("Coffee Shop") == "coffee-shop"


def test_suffix_counts_existing_matches(db):
    generator = SlugGenerator(StoreRepository(db))
    _insert(db, "coffee-shop")
    assert generator.generate("Coffee Shop") == "coffee-shop-1"
    _insert(db, "coffee-shop-1")
    assert generator.generate("coffee shop") == "coffee-shop-2"


def test_unrelated_slugs_are_not_counted(db):
    _insert(db, "coffee-shop-north")
    _insert(db, "coffee-shops")
    assert SlugGenerator(StoreRepository(db)).generate("Coffee Shop") == "coffee-shop"


def test_count_policy_can_repeat_a_suffix_after_deletion(db):
    _insert(db, "shop")
    _insert(db, "shop-2")
    assert SlugGenerator(StoreRepository(db)).generate("Shop") == "shop-2"


def test_empty_slug_falls_back(db):
    assert SlugGenerator(StoreRepository(db)).generate("???") == "store"
