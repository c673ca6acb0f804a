"""Tests for the document processing workflow."""

import json

import pytest

from vaultlink.config import ProcessingOptions, ResolverConfig
from vaultlink.extraction import ExtractionParseError
from vaultlink.models import MatchType, SuggestedWikilink
from vaultlink.processor import DocumentProcessor
from vaultlink.resolver import EntityResolver, ResolverNotInitializedError

DOCUMENT = "Clare Attwell met Acme Corp staff. Attwell said hi."

RESPONSE = "```json\n" + json.dumps(
    {
        "entities": [
            {
                "name": "Clare Attwell",
                "type": "Person",
                "mentions": ["Clare Attwell", "Attwell"],
                "confidence": 0.9,
                "context": "Lead researcher",
            },
            {
                "name": "Acme Corp",
                "type": "Organization",
                "mentions": ["Acme Corp"],
                "confidence": 0.9,
                "context": "Contractor on the survey",
            },
            {"name": "Gizmo", "type": "Gadget", "mentions": ["Gizmo"], "confidence": 0.9},
            {"type": "Person", "mentions": []},
        ],
        "topics": ["fieldwork"],
        "documentType": "Meeting Notes",
    }
) + "\n```"


def _processor(known_people, **options) -> DocumentProcessor:
    processor = DocumentProcessor(ProcessingOptions(**options))
    processor.load_vault_entities(known_people)
    return processor


class TestProcessDocument:
    """Tests for DocumentProcessor.process_document()."""

    def test_resolves_and_suggests(self, known_people):
        result = _processor(known_people).process_document("Notes/meeting.md", DOCUMENT, RESPONSE)

        assert [e.name for e in result.entities] == ["Clare Attwell", "Acme Corp"]
        assert result.resolutions["Clare Attwell"].match_type is MatchType.EXACT
        assert result.resolutions["Acme Corp"].match_type is MatchType.NEW
        assert result.stats.entities_extracted == 2
        assert result.stats.entities_resolved == 1
        assert result.stats.new_entities_suggested == 1

        # Unresolved links are down-weighted below the 0.7 cutoff
        assert [w.replacement for w in result.wikilinks] == [
            "[[People/Clare Attwell|Attwell]]",
            "[[People/Clare Attwell]]",
        ]
        assert result.stats.wikilinks_added == 2
        assert result.frontmatter["@type"] == "Meeting Notes"
        assert result.frontmatter["topics"] == ["fieldwork"]
        assert result.modified_content is None
        assert result.new_entities == []

    def test_apply_when_not_previewing(self, known_people):
        result = _processor(known_people, preview=False).process_document("n.md", DOCUMENT, RESPONSE)

        assert result.modified_content == (
            "[[People/Clare Attwell]] met Acme Corp staff. [[People/Clare Attwell|Attwell]] said hi."
        )

    def test_new_entity_files(self, known_people):
        result = _processor(known_people, create_entities=True).process_document("n.md", DOCUMENT, RESPONSE)

        assert len(result.new_entities) == 1
        new_entity = result.new_entities[0]
        assert new_entity.path == "Organizations/Acme Corp"
        assert new_entity.frontmatter["@type"] == "schema:Organization"
        assert new_entity.frontmatter["name"] == "Acme Corp"
        assert new_entity.content == "# Acme Corp\n\nContractor on the survey"

    def test_resolver_can_forbid_new_entities(self, known_people):
        resolver = EntityResolver(ResolverConfig(allow_new_entities=False))
        processor = DocumentProcessor(ProcessingOptions(create_entities=True), resolver)
        processor.load_vault_entities(known_people)

        result = processor.process_document("n.md", DOCUMENT, RESPONSE)

        assert result.new_entities == []

    def test_unparseable_response(self, known_people):
        with pytest.raises(ExtractionParseError):
            _processor(known_people).process_document("n.md", DOCUMENT, "sorry, no entities")

    def test_requires_loaded_entities(self):
        with pytest.raises(ResolverNotInitializedError):
            DocumentProcessor().process_document("n.md", DOCUMENT, RESPONSE)


class TestBuildPrompt:
    def test_uses_loaded_entities(self, known_people):
        prompt = _processor(known_people).build_prompt(DOCUMENT)

        assert "- Fisheries and Oceans Canada / DFO" in prompt
        assert DOCUMENT in prompt


class TestApplyWikilinks:
    """Tests for DocumentProcessor.apply_wikilinks()."""

    def test_skips_stale_offsets(self):
        wikilinks = [
            SuggestedWikilink(
                original_text="Acme",
                replacement="[[Organizations/Acme]]",
                entity_type="Organization",
                confidence=0.9,
                start_offset=0,
                end_offset=4,
            ),
            SuggestedWikilink(
                original_text="Clare",
                replacement="[[People/Clare]]",
                entity_type="Person",
                confidence=0.9,
                start_offset=9,
                end_offset=14,
            ),
        ]

        result = DocumentProcessor().apply_wikilinks("Acme and Bruno", wikilinks)

        assert result == "[[Organizations/Acme]] and Bruno"


class TestFormatResultSummary:
    """Tests for DocumentProcessor.format_result_summary()."""

    def test_summary_sections(self, known_people):
        processor = _processor(known_people, create_entities=True)
        result = processor.process_document("Notes/meeting.md", DOCUMENT, RESPONSE)

        summary = processor.format_result_summary(result)

        assert summary.startswith("## Processing Result: Notes/meeting.md")
        assert "- Clare Attwell -> EXACT -> [[People/Clare Attwell]]" in summary
        assert "- Acme Corp -> NEW -> [[Organizations/Acme Corp]]" in summary
        assert "### Suggested Frontmatter" in summary
        assert "- **Organizations/Acme Corp.md** (Organization)" in summary
        assert "### Wikilinks to Insert (2)" in summary

    def test_fuzzy_status_shows_percentage(self, known_people):
        response = json.dumps(
            {"entities": [{"name": "Clare Atwell", "type": "Person", "mentions": [], "confidence": 0.9}]}
        )
        processor = _processor(known_people)

        summary = processor.format_result_summary(processor.process_document("n.md", "", response))

        assert "- Clare Atwell -> FUZZY (" in summary
        assert "%) -> [[People/Clare Attwell]]" in summary


class TestMalformedExtraction:
    """Entries the model got wrong are tolerated, not fatal."""

    def test_bad_field_types(self, known_people):
        response = json.dumps(
            {
                "entities": [
                    {
                        "name": "Clare Attwell",
                        "type": "Person",
                        "mentions": "Clare Attwell",
                        "confidence": "high",
                        "context": 5,
                    },
                    {"name": "Acme Corp", "type": "Organization", "mentions": ["Acme Corp", 7], "confidence": 1.7},
                    {"name": ["not", "a", "name"], "type": "Person"},
                ],
                "topics": "fieldwork",
                "documentType": 3,
            }
        )

        result = _processor(known_people).process_document("n.md", DOCUMENT, response)

        clare, acme = result.entities
        assert clare.mentions == []
        assert clare.confidence == 0.0
        assert clare.context is None
        assert [m.text for m in acme.mentions] == ["Acme Corp"]
        assert acme.confidence == 1.0
        assert "topics" not in result.frontmatter
        assert "@type" not in result.frontmatter

    @pytest.mark.parametrize("entities", ["oops", 42, {"name": "x"}, None])
    def test_entities_not_a_list(self, known_people, entities):
        response = json.dumps({"entities": entities})

        result = _processor(known_people).process_document("n.md", DOCUMENT, response)

        assert result.entities == []
