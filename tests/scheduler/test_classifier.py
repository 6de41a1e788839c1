"""
Test cases for the keyword classifier.
"""

import pytest

from catalog.models import Item
from scheduler.classifier import DEFAULT_RULES, ClassificationRule, Classifier


def _matched(buckets, item_id):
    """Names of the buckets containing an item."""
    return [name for name, items in buckets.items() if any(i.id == item_id for i in items)]


class TestClassifier:
    """Test cases for Classifier."""

    @pytest.fixture
    def classifier(self):
        """Classifier with the default rules."""
        return Classifier()

    def test_all_buckets_present_in_rule_order(self, classifier):
        """Test that every rule yields a bucket, even when empty."""
        buckets = classifier.classify([])

        assert list(buckets) == [rule.name for rule in DEFAULT_RULES]
        assert all(items == [] for items in buckets.values())

    def test_track_pants_not_in_pants(self, classifier, make_item):
        """Test the track-pants exclusion on the generic pants rule."""
        buckets = classifier.classify([make_item("1", title="Men's Track Pants Slim")])

        assert _matched(buckets, "1") == ["trackpant"]

    @pytest.mark.parametrize("title", ["Trackpants Black", "Men Track-Pants", "TRACK PANT Grey"])
    def test_track_pant_spellings(self, classifier, make_item, title):
        """Test the track pant spellings."""
        buckets = classifier.classify([make_item("1", title=title)])

        assert _matched(buckets, "1") == ["trackpant"]

    def test_plain_pants(self, classifier, make_item):
        """Test that ordinary pants land in the pants bucket."""
        buckets = classifier.classify([make_item("1", title="Cargo Pants Olive")])

        assert _matched(buckets, "1") == ["pants"]

    def test_sweatshirt_not_in_tshirt(self, classifier, make_item):
        """Test that 'sweatshirt' does not count as a t-shirt."""
        buckets = classifier.classify([make_item("1", title="Crew Neck Sweatshirt")])

        assert _matched(buckets, "1") == ["sweatshirt"]

    @pytest.mark.parametrize("title", ["Oversized T-Shirt", "Graphic Tshirt", "Basic T Shirt"])
    def test_tshirt_spellings(self, classifier, make_item, title):
        """Test the t-shirt spellings."""
        buckets = classifier.classify([make_item("1", title=title)])

        assert _matched(buckets, "1") == ["tshirt"]

    def test_non_exclusive_membership(self, classifier, make_item):
        """Test that an item can land in several buckets."""
        buckets = classifier.classify([make_item("1", title="Hoodie and Jeans Combo")])

        assert _matched(buckets, "1") == ["hoodie", "jeans"]

    def test_pyjama_spellings(self, classifier, make_item):
        """Test the pyjama and pajama spellings."""
        buckets = classifier.classify([
            make_item("1", title="Cotton Pyjama Set"),
            make_item("2", title="Checked Pajama"),
        ])

        assert [i.id for i in buckets["pyjama"]] == ["1", "2"]

    def test_items_keep_input_order(self, classifier, make_item):
        """Test that bucket contents follow the input order."""
        items = [make_item(str(n), title=f"Hoodie {n}") for n in (3, 1, 2)]

        assert [i.id for i in classifier.classify(items)["hoodie"]] == ["3", "1", "2"]

    def test_empty_title_matches_nothing(self, classifier):
        """Test that items without a title are skipped."""
        item = Item(id="1", title="", link="https://shop.example.com/p/1")

        assert _matched(classifier.classify([item]), "1") == []

    def test_unmatched_title(self, classifier, make_item):
        """Test an item matching no rule."""
        buckets = classifier.classify([make_item("1", title="Leather Belt")])

        assert _matched(buckets, "1") == []

    def test_buckets_not_capped(self, classifier, make_item):
        """Test that classification does not truncate."""
        items = [make_item(str(n), title="Slim Jeans") for n in range(50)]

        assert len(classifier.classify(items)["jeans"]) == 50

    def test_classify_into_buckets(self, classifier, make_item):
        """Test labelled bucket output."""
        buckets = classifier.classify_into_buckets([make_item("1", title="Denim Jeans")])

        jeans = next(b for b in buckets if b.name == "jeans")
        assert jeans.label == "JEANS"
        assert [i.id for i in jeans.items] == ["1"]
        assert len(buckets) == len(DEFAULT_RULES)

    def test_custom_rules(self, make_item):
        """Test a classifier with its own rules."""
        classifier = Classifier([ClassificationRule("shoes", "SHOES", ("sneaker", "shoe"))])

        buckets = classifier.classify([make_item("1", title="White Sneakers")])

        assert list(buckets) == ["shoes"]
        assert [i.id for i in buckets["shoes"]] == ["1"]
        assert classifier.labels() == {"shoes": "SHOES"}
