"""Unit tests for submission document rendering"""

import uuid
import pytest
import xml.etree.ElementTree as ET
from trip_reports.domain.compensation import calculate_compensation_for_all_members
from trip_reports.domain.exceptions import RenderingError
from trip_reports.domain.rendering import render_report_document
from trip_reports.domain.serialization import report_to_snapshot


@pytest.fixture
def snapshot(report, price_lists):
    report.id = uuid.uuid4()
    report.calculation = calculate_compensation_for_all_members(report.part_a, price_lists, report.team)
    return report_to_snapshot(report)


def test_document_root_carries_order_reference(snapshot):
    document = render_report_document(snapshot)
    root = ET.fromstring(document.split("?>", 1)[1])

    assert document.startswith("<?xml")
    assert root.tag == "report"
    assert root.get("order_id") == "5001"
    assert root.get("order_number") == "ZP-2024-5001"


def test_sections_are_inlined(snapshot):
    root = ET.fromstring(render_report_document(snapshot).split("?>", 1)[1])

    assert root.find("part_a") is None
    assert root.findtext("execution_date") == "2024-05-10"
    assert root.findtext("route_note") == "Route passable"
    assert root.find("completed") is None
    assert root.findtext("part_a_completed") == "true"
    assert root.findtext("part_b_completed") == "true"


def test_lists_and_keyed_items(snapshot):
    root = ET.fromstring(render_report_document(snapshot).split("?>", 1)[1])

    segments = root.findall("./travel_groups/travel_group/segments/segment")
    assert [s.get("id") for s in segments] == ["s1", "s2"]
    assert [m.get("id") for m in root.findall("./team/member")] == ["101", "102"]
    assert root.find("./calculation/member[@id='101']").findtext("total") == "572.00"
    assert root.find("./payouts/payout[@id='102']").text == "320.00"


def test_empty_values_omitted(snapshot):
    root = ET.fromstring(render_report_document(snapshot).split("?>", 1)[1])

    assert root.find("primary_driver") is None
    assert root.find("accommodations") is not None
    assert list(root.find("accommodations")) == []


def test_missing_order_reference():
    with pytest.raises(RenderingError):
        render_report_document({"part_a": {}, "part_b": {}})


def test_section_must_be_mapping(snapshot):
    snapshot["part_b"] = ["not", "a", "mapping"]

    with pytest.raises(RenderingError):
        render_report_document(snapshot)
