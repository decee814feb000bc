"""Tests for storage.seeding module."""

from llm_visibility.config.schema import ProjectSeed, TopicSeed
from llm_visibility.storage.seeding import sync_projects


def _seed(**overrides):
    fields = {
        "name": "Shoe Watch",
        "brand": "Nike",
        "competitors": ["Adidas"],
        "topics": [
            TopicSeed(name="Trail", queries=["best trail shoes", "trail shoes 2025"]),
            TopicSeed(name="Road", queries=["best road shoes"]),
        ],
    }
    fields.update(overrides)
    return ProjectSeed(**fields)


class TestSyncProjects:
    """Test suite for sync_projects()."""

    def test_creates_project_and_topics(self, store):
        summaries = sync_projects(store, [_seed()])

        assert summaries == [
            {
                "project_id": "shoe-watch",
                "created": True,
                "topics_created": 2,
                "queries_added": 3,
            }
        ]
        assert [t.name for t in store.list_topics("shoe-watch")] == ["Trail", "Road"]

    def test_second_sync_is_a_no_op(self, store):
        sync_projects(store, [_seed()])

        summaries = sync_projects(store, [_seed()])

        assert summaries[0]["created"] is False
        assert summaries[0]["topics_created"] == 0
        assert summaries[0]["queries_added"] == 0

    def test_appends_new_queries_to_existing_topic(self, store):
        sync_projects(store, [_seed()])
        seed = _seed(topics=[TopicSeed(name="Trail", queries=["best trail shoes", "new"])])

        summaries = sync_projects(store, [seed])

        assert summaries[0]["queries_added"] == 1
        assert store.get_topic("shoe-watch", "Trail").queries == (
            "best trail shoes",
            "trail shoes 2025",
            "new",
        )

    def test_existing_project_is_not_modified(self, store):
        """Test that sync never overwrites a project's brand or competitors."""
        store.create_project("Shoe Watch", "Nike", ["Puma"])

        sync_projects(store, [_seed(competitors=["Adidas", "Salomon"])])

        assert store.get_project("shoe-watch").competitors == ("Puma",)

    def test_explicit_id(self, store):
        summaries = sync_projects(store, [_seed(id="shoes")])

        assert summaries[0]["project_id"] == "shoes"
        assert store.get_project("shoes").name == "Shoe Watch"

    def test_language_carried_over(self, store):
        sync_projects(store, [_seed(language="SV")])

        assert store.get_project("shoe-watch").language == "sv"
