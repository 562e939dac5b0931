"""Tests for inkpost.services.cache_storage."""


class TestCacheStorage:
    def test_missing_key_is_none(self, storage):
        assert storage.get("nope") is None

    def test_set_then_get(self, storage):
        storage.set("post:1", '{"data": 1, "timestamp": 0}')
        assert storage.get("post:1") == '{"data": 1, "timestamp": 0}'

    def test_last_write_wins(self, storage):
        storage.set("k", "one")
        storage.set("k", "two")
        assert storage.get("k") == "two"

    def test_remove(self, storage):
        storage.set("k", "v")
        storage.remove("k")
        storage.remove("never-set")
        assert storage.get("k") is None

    def test_remove_prefix_only_touches_matching_keys(self, storage):
        for key in ("homepage_posts:1", "homepage_posts:2", "homepage_columns", "post:1"):
            storage.set(key, "v")

        removed = storage.remove_prefix("homepage_posts:")

        assert removed == 2
        assert storage.get("homepage_posts:1") is None
        assert storage.get("homepage_posts:2") is None
        assert storage.get("homepage_columns") == "v"
        assert storage.get("post:1") == "v"

    def test_remove_prefix_treats_wildcards_literally(self, storage):
        storage.set("homepage_posts:1", "v")
        storage.set("homepageXposts:1", "v")

        # "_" would match any character in an unescaped LIKE
        storage.remove_prefix("homepage_")

        assert storage.get("homepage_posts:1") is None
        assert storage.get("homepageXposts:1") == "v"
