"""End-to-end tests for the clip renaming pipeline."""

import xml.etree.ElementTree as ET

import pytest

from doublelove.models import (
    RenameConfig,
    SchemaVariant,
    XMLProcessError,
    XMLProcessErrorType,
)
from doublelove.normalize import DIT_REPLACEMENT
from doublelove.processor import (
    XMLRenamer,
    generate_output_path,
    process_xml,
    rename_file,
    rename_files,
)

HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n'

LOGGED_COMMENTS = "<comments><mastercomment1></mastercomment1><mastercomment2></mastercomment2></comments>"


def _labels(label="Keep", label2="Iris"):
    return f"<labels><label>{label}</label><label2>{label2}</label2></labels>"


def _clip(clip_id="clip-1", name="A001C002_220101_R1AB", scene="a1", shottake="3-5",
          cameraroll="BCam002", labels=None, comments=None, lognote="DIT: (null)"):
    """Build a logged clip element."""
    labels = _labels() if labels is None else labels
    comments = LOGGED_COMMENTS if comments is None else comments
    return (
        f'<clip id="{clip_id}"><name>{name}</name><duration>250</duration>'
        f'{labels}'
        f'<logginginfo><scene>{scene}</scene><shottake>{shottake}</shottake>'
        f'<lognote>{lognote}</lognote></logginginfo>'
        f'<filmdata><cameraroll>{cameraroll}</cameraroll></filmdata>'
        f'{comments}</clip>'
    )


def _sequence(seq_id="sequence_id_clip-1", name="A001C002_220101_R1AB", labels="",
              pathurl="file:///Volumes/A001/A001C002.0001234.ari", audio_labels=""):
    """Build the sequence the authoring tool generates for a clip."""
    return (
        f'<sequence id="{seq_id}"><name>{name}</name>'
        f'<media><video><format><samplecharacteristics>'
        f'<width>3840</width><height>2160</height>'
        f'</samplecharacteristics></format>'
        f'<track><clipitem id="{seq_id}-v1"><name>{name}</name>'
        f'<file id="f1"><name>{name}</name><pathurl>{pathurl}</pathurl></file>'
        f'</clipitem></track></video>'
        f'<audio><track><clipitem id="{seq_id}-a1"><name>{name}</name>{audio_labels}'
        f'</clipitem></track></audio></media>{labels}</sequence>'
    )


def _xmeml(children):
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n<!DOCTYPE xmeml>\n'
        f'<xmeml version="5"><project><name>Dailies</name><children>'
        f'{children}</children></project></xmeml>'
    )


def _parse(output):
    assert output.startswith(HEADER)
    return ET.fromstring(output[len(HEADER):])


def _clip_by_id(root, clip_id):
    return next(c for c in root.iter('clip') if c.get('id') == clip_id)


def _sequence_by_id(root, seq_id):
    return next(s for s in root.iter('sequence') if s.get('id') == seq_id)


LEGACY_FORMAT = "{scene}_{shot}_{take}{camera}_{Rating}"


# ============================================================
# Naming
# ============================================================

class TestClipNaming:

    def test_scenario_name(self):
        xml = _xmeml(_clip() + _sequence())
        out = process_xml(xml, RenameConfig(format=LEGACY_FORMAT, prefix=""))
        root = _parse(out)
        assert _clip_by_id(root, "clip-1").find('name').text == "A001_03_05bc_kp"

    def test_default_template(self):
        root = _parse(process_xml(_xmeml(_clip())))
        assert _clip_by_id(root, "clip-1").find('name').text == "A001_03_05bc_kp"

    def test_prefix(self):
        root = _parse(process_xml(_xmeml(_clip()), RenameConfig(prefix="DL_")))
        assert _clip_by_id(root, "clip-1").find('name').text == "DL_A001_03_05bc_kp"

    def test_no_label_means_no_rating(self):
        xml = _xmeml(_clip(labels=_labels(label="No Label")))
        root = _parse(process_xml(xml))
        assert _clip_by_id(root, "clip-1").find('name').text == "A001_03_05bc"

    def test_custom_label_used_as_rating(self):
        xml = _xmeml(_clip(labels=_labels(label="Best")))
        root = _parse(process_xml(xml))
        assert _clip_by_id(root, "clip-1").find('name').text == "A001_03_05bc_best"

    def test_clip_without_labels(self):
        root = _parse(process_xml(_xmeml(_clip(labels=""))))
        assert _clip_by_id(root, "clip-1").find('name').text == "A001_03_05bc"

    def test_rating_from_labels_not_comments(self):
        xml = _xmeml(_clip(comments="<comments><mastercomment2>NG</mastercomment2></comments>"))
        root = _parse(process_xml(xml))
        assert _clip_by_id(root, "clip-1").find('name').text == "A001_03_05bc_kp"

    def test_camera_roll_without_letters(self):
        root = _parse(process_xml(_xmeml(_clip(cameraroll="002"))))
        assert _clip_by_id(root, "clip-1").find('name').text == "A001_03_05_kp"


# ============================================================
# Skipped clips
# ============================================================

class TestSkippedClips:

    @pytest.mark.parametrize("kwargs", [
        {"shottake": "bad"},
        {"shottake": "1-2-3"},
        {"shottake": " - "},
        {"scene": ""},
        {"scene": "---"},
        {"cameraroll": ""},
    ])
    def test_clip_left_unchanged(self, kwargs):
        xml = _xmeml(_clip(**kwargs) + _sequence())
        report = XMLRenamer(xml).run()
        root = _parse(report.output)
        assert _clip_by_id(root, "clip-1").find('name').text == "A001C002_220101_R1AB"
        sequence = _sequence_by_id(root, "sequence_id_clip-1")
        assert sequence.find('name').text == "A001C002_220101_R1AB"
        assert sequence.find('labels') is None
        assert report.renamed == []
        assert len(report.skipped) == 1

    def test_invalid_format_reason(self):
        report = XMLRenamer(_xmeml(_clip(shottake="bad"))).run()
        assert report.skipped[0].reason == XMLProcessErrorType.INVALID_FORMAT

    @pytest.mark.parametrize("labels", ["", None])
    def test_missing_comments_skips(self, labels):
        xml = _xmeml(_clip(labels=labels, comments="") + _sequence())
        report = XMLRenamer(xml).run()
        assert report.renamed == []
        assert report.skipped[0].reason == XMLProcessErrorType.MISSING_REQUIRED_ELEMENTS
        root = _parse(report.output)
        assert _clip_by_id(root, "clip-1").find('name').text == "A001C002_220101_R1AB"
        assert _sequence_by_id(root, "sequence_id_clip-1").find('name').text == "A001C002_220101_R1AB"

    def test_missing_logginginfo(self):
        xml = _xmeml('<clip id="bare"><name>bare</name></clip>' + _clip())
        report = XMLRenamer(xml).run()
        assert [s.clip_id for s in report.skipped] == ["bare"]
        assert report.skipped[0].reason == XMLProcessErrorType.MISSING_REQUIRED_ELEMENTS
        assert [r.clip_id for r in report.renamed] == ["clip-1"]

    def test_other_clips_still_processed(self):
        xml = _xmeml(
            _clip("c1", shottake="bad") + _clip("c2", scene="12", shottake="1-2", cameraroll="A001")
        )
        root = _parse(process_xml(xml))
        assert _clip_by_id(root, "c1").find('name').text == "A001C002_220101_R1AB"
        assert _clip_by_id(root, "c2").find('name').text == "012_01_02a_kp"

    def test_unexpected_error_isolated(self, monkeypatch):
        import doublelove.processor as processor

        calls = []

        def flaky(document, clip, new_name, schema):
            calls.append(clip.get('id'))
            if clip.get('id') == "c1":
                raise RuntimeError("boom")
            return None

        monkeypatch.setattr(processor, "update_related_elements", flaky)
        report = XMLRenamer(_xmeml(_clip("c1") + _clip("c2"))).run()
        assert calls == ["c1", "c2"]
        assert [r.clip_id for r in report.renamed] == ["c2"]
        assert report.skipped[0].clip_id == "c1"
        assert "RuntimeError" in report.skipped[0].details


# ============================================================
# Propagation (labels schema)
# ============================================================

class TestLabelsPropagation:

    def test_sequence_and_clipitems_renamed(self):
        root = _parse(process_xml(_xmeml(_clip() + _sequence())))
        sequence = _sequence_by_id(root, "sequence_id_clip-1")
        assert sequence.find('name').text == "A001_03_05bc_kp"
        video_item = sequence.find('.//video/track/clipitem')
        assert video_item.find('name').text == "A001_03_05bc_kp"
        # nested file name is not a clipitem name
        assert video_item.find('file/name').text == "A001C002_220101_R1AB"
        audio_item = sequence.find('.//audio/track/clipitem')
        assert audio_item.find('name').text == "A001C002_220101_R1AB"

    def test_ci_sequence_id_convention(self):
        xml = _xmeml(_clip() + _sequence(seq_id="sequence_clip-1_ci"))
        root = _parse(process_xml(xml))
        assert _sequence_by_id(root, "sequence_clip-1_ci").find('name').text == "A001_03_05bc_kp"

    def test_sequence_id_preferred_over_ci(self):
        xml = _xmeml(
            _clip()
            + _sequence(seq_id="sequence_clip-1_ci", name="ci")
            + _sequence(seq_id="sequence_id_clip-1", name="id")
        )
        root = _parse(process_xml(xml))
        assert _sequence_by_id(root, "sequence_id_clip-1").find('name').text == "A001_03_05bc_kp"
        assert _sequence_by_id(root, "sequence_clip-1_ci").find('name').text == "ci"

    def test_unrelated_sequence_untouched(self):
        xml = _xmeml(_clip() + _sequence(seq_id="sequence_id_other", name="other"))
        root = _parse(process_xml(xml))
        assert _sequence_by_id(root, "sequence_id_other").find('name').text == "other"

    def test_index_not_rebuilt_per_clip(self, monkeypatch):
        from doublelove.document import XMLDocument

        builds = []
        original = XMLDocument._build_index

        def counting(self):
            builds.append(1)
            original(self)

        monkeypatch.setattr(XMLDocument, "_build_index", counting)
        xml = _xmeml("".join(
            _clip(f"c{i}") + _sequence(seq_id=f"sequence_id_c{i}", audio_labels=_labels("Old"))
            for i in range(40)
        ))
        report = XMLRenamer(xml).run()
        assert len(report.renamed) == 40
        assert len(builds) <= 2

    def test_labels_copied_everywhere(self):
        root = _parse(process_xml(_xmeml(_clip() + _sequence())))
        sequence = _sequence_by_id(root, "sequence_id_clip-1")
        assert sequence.find('labels/label').text == "Keep"
        for clipitem in sequence.iter('clipitem'):
            assert clipitem.find('labels/label').text == "Keep"

    def test_existing_labels_replaced(self):
        xml = _xmeml(_clip() + _sequence(
            labels=_labels(label="Old"),
            audio_labels=_labels(label="Stale", label2="Rose"),
        ))
        root = _parse(process_xml(xml))
        sequence = _sequence_by_id(root, "sequence_id_clip-1")
        assert len(sequence.findall('labels')) == 1
        assert sequence.find('labels/label').text == "Keep"
        audio_item = sequence.find('.//audio/track/clipitem')
        assert len(audio_item.findall('labels')) == 1
        assert audio_item.find('labels/label').text == "Keep"
        assert audio_item.find('labels/label2').text == "Iris"

    def test_clip_without_id_not_renamed(self):
        xml = _xmeml(_clip().replace(' id="clip-1"', ''))
        root = _parse(process_xml(xml))
        assert root.find('.//clip/name').text == "A001C002_220101_R1AB"

    def test_report_records_sequence(self):
        report = XMLRenamer(_xmeml(_clip() + _sequence())).run()
        assert report.renamed[0].old_name == "A001C002_220101_R1AB"
        assert report.renamed[0].new_name == "A001_03_05bc_kp"
        assert report.renamed[0].sequence_id == "sequence_id_clip-1"


class TestLabelSpelling:

    def test_fixed_on_clip_and_copies(self):
        xml = _xmeml(_clip(labels=_labels(label2="Celurean")) + _sequence())
        root = _parse(process_xml(xml))
        assert _clip_by_id(root, "clip-1").find('labels/label2').text == "Cerulean"
        sequence = _sequence_by_id(root, "sequence_id_clip-1")
        assert sequence.find('labels/label2').text == "Cerulean"

    def test_fixed_on_skipped_clips_and_loose_labels(self):
        xml = _xmeml(
            _clip(shottake="bad", labels=_labels(label2="Celurean"))
            + _sequence(seq_id="sequence_id_other", labels=_labels(label2="Celurean"))
        )
        out = process_xml(xml)
        assert "Celurean" not in out
        assert out.count("Cerulean") == 2

    def test_not_fixed_in_comments_schema(self):
        xml = _xmeml(_clip(labels=_labels(label2="Celurean")))
        out = process_xml(xml, RenameConfig(schema=SchemaVariant.COMMENTS))
        assert "Celurean" in out


# ============================================================
# Comments (legacy) schema
# ============================================================

def _comments(text):
    return f"<comments><mastercomment1></mastercomment1><mastercomment2>{text}</mastercomment2></comments>"


def _legacy_sequence(seq_id="sequence_clip-1_ci"):
    return (
        f'<sequence id="{seq_id}"><name>seq</name><media><video><track>'
        f'<clipitem><name>item</name><file><name>file</name></file></clipitem>'
        f'</track></video></media></sequence>'
    )


class TestCommentsSchema:

    def _run(self, xml, **kwargs):
        return _parse(process_xml(xml, RenameConfig(schema="comments", **kwargs)))

    def test_circle_rating(self):
        root = self._run(_xmeml(_clip(labels="", comments=_comments("Circle,"))))
        assert _clip_by_id(root, "clip-1").find('name').text == "A001_03_05bc_ok"

    def test_no_keyword(self):
        root = self._run(_xmeml(_clip(labels="", comments=_comments("soft focus"))))
        assert _clip_by_id(root, "clip-1").find('name').text == "A001_03_05bc"

    def test_labels_ignored(self):
        root = self._run(_xmeml(_clip(labels=_labels("Keep"), comments=_comments("NG"))))
        assert _clip_by_id(root, "clip-1").find('name').text == "A001_03_05bc_ng"

    def test_missing_comments_skips(self):
        xml = _xmeml(_clip(comments=""))
        report = XMLRenamer(xml, RenameConfig(schema=SchemaVariant.COMMENTS)).run()
        assert report.skipped[0].reason == XMLProcessErrorType.MISSING_REQUIRED_ELEMENTS
        assert _clip_by_id(_parse(report.output), "clip-1").find('name').text == "A001C002_220101_R1AB"

    def test_third_name_rewritten(self):
        xml = _xmeml(_clip(labels="", comments=_comments("KEEP")) + _legacy_sequence())
        root = self._run(xml)
        names = [n.text for n in _sequence_by_id(root, "sequence_clip-1_ci").iter('name')]
        assert names == ["A001_03_05bc_kp", "item", "A001_03_05bc_kp"]

    def test_labels_not_copied(self):
        xml = _xmeml(_clip(comments=_comments("KEEP")) + _legacy_sequence())
        root = self._run(xml)
        assert _sequence_by_id(root, "sequence_clip-1_ci").find('.//labels') is None

    def test_pathurl_untouched(self):
        xml = _xmeml(_clip(comments=_comments("KEEP")) + _sequence())
        root = self._run(xml)
        assert root.find('.//pathurl').text == "file:///Volumes/A001/A001C002.0001234.ari"


# ============================================================
# Document-level normalization
# ============================================================

class TestNormalization:

    def test_resolution_rewritten_even_when_clips_skipped(self):
        xml = _xmeml(
            _clip("c1", shottake="bad") + _sequence("sequence_id_c1")
            + _sequence("sequence_id_c2")
        )
        root = _parse(process_xml(xml, RenameConfig(width=1280, height=720)))
        assert [w.text for w in root.iter('width')] == ["1280", "1280"]
        assert [h.text for h in root.iter('height')] == ["720", "720"]

    def test_default_resolution(self):
        root = _parse(process_xml(_xmeml(_sequence())))
        assert root.find('.//width').text == "1920"
        assert root.find('.//height').text == "1080"

    def test_dit_note(self):
        xml = _xmeml(_clip("c1") + _clip("c2", lognote="DIT: something else"))
        out = process_xml(xml)
        assert DIT_REPLACEMENT in out
        assert "DIT: something else" in out
        assert "DIT: (null)" not in out

    def test_dit_note_exact_match_only(self):
        out = process_xml(_xmeml(_clip(lognote="DIT: (null) extra")))
        assert "DIT: (null) extra" in out
        assert DIT_REPLACEMENT not in out

    def test_pathurls(self):
        pathurls = (
            "<pathurl>file:///A/A001C002.0001234.ari</pathurl>"
            "<pathurl>file:///A/B002.000001.arx</pathurl>"
            "<pathurl>file:///A/clip_000123.dng</pathurl>"
            "<pathurl>file:///A/plain.mov</pathurl>"
        )
        root = _parse(process_xml(_xmeml(pathurls)))
        assert [p.text for p in root.iter('pathurl')] == [
            "file:///A/A001C002.ari",
            "file:///A/B002.arx",
            "file:///A/clip.dng",
            "file:///A/plain.mov",
        ]


# ============================================================
# Whole-file behaviour
# ============================================================

class TestProcessXml:

    def test_invalid_xml_raises(self):
        with pytest.raises(XMLProcessError) as exc:
            process_xml("<xmeml><clip></xmeml>")
        assert exc.value.error_type == XMLProcessErrorType.INVALID_XML

    def test_no_clips_round_trip(self):
        body = ('<xmeml version="5"><sequence id="s"><name>Seq</name>'
                '<!-- note --><rate><timebase>25</timebase></rate></sequence></xmeml>')
        assert process_xml(body) == HEADER + body

    def test_accepts_bytes(self):
        out = process_xml(_xmeml(_clip()).encode('utf-8'))
        assert "A001_03_05bc_kp" in out

    def test_unicode_preserved(self):
        out = process_xml(_xmeml(_clip(lognote="シーン 1")))
        assert "シーン 1" in out

    def test_progress_monotonic(self):
        seen = []
        process_xml(_xmeml(_clip("c1") + _clip("c2") + _clip("c3")),
                    RenameConfig(on_progress=seen.append))
        assert seen == sorted(seen)
        assert seen[0] == 0
        assert seen[-1] == 100
        assert all(0 <= p <= 100 for p in seen)

    def test_progress_callback_errors_ignored(self):
        def broken(percent):
            raise RuntimeError("ui gone")

        out = process_xml(_xmeml(_clip()), RenameConfig(on_progress=broken))
        assert "A001_03_05bc_kp" in out


# ============================================================
# File workflows
# ============================================================

class TestFileWorkflows:

    def test_generate_output_path(self):
        assert generate_output_path("/p/day1.xml") == "/p/day1_Double_LOVE.xml"

    def test_rename_file_default_output(self, tmp_path):
        src = tmp_path / "day1.xml"
        src.write_text(_xmeml(_clip()), encoding='utf-8')
        report = rename_file(str(src))
        out = tmp_path / "day1_Double_LOVE.xml"
        assert report.output_path == str(out)
        assert "A001_03_05bc_kp" in out.read_text(encoding='utf-8')

    def test_rename_file_rejects_extension(self, tmp_path):
        src = tmp_path / "day1.txt"
        src.write_text(_xmeml(_clip()))
        with pytest.raises(ValueError, match="Not an XML file"):
            rename_file(str(src))

    def test_batch_continues_after_error(self, tmp_path):
        good = tmp_path / "good.xml"
        good.write_text(_xmeml(_clip()), encoding='utf-8')
        bad = tmp_path / "bad.xml"
        bad.write_text("<xmeml><clip></xmeml>", encoding='utf-8')
        also_good = tmp_path / "also_good.xml"
        also_good.write_text(_xmeml(_clip()), encoding='utf-8')

        started = []
        results = rename_files([str(good), str(bad), str(also_good)],
                               on_file=lambda i, total, path: started.append((i, total)))
        assert started == [(0, 3), (1, 3), (2, 3)]
        assert [r.ok for r in results] == [True, False, True]
        assert "INVALID_XML" in results[1].error
        assert not (tmp_path / "bad_Double_LOVE.xml").exists()
        assert (tmp_path / "also_good_Double_LOVE.xml").exists()
