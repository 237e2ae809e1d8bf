"""Unit tests for archivist.resources.aggregator — course grouping."""

import pytest

from archivist.resources.aggregator import CourseGroup, ResourceAggregator, collation_key
from archivist.resources.filters import FilterConfig, FilterPipeline
from archivist.resources.models import Resource
from conftest import resource


def parse(*records):
    return Resource.parse_records(records)


class TestGroup:

    def test_two_types_one_course(self):
        groups = ResourceAggregator.group(parse(
            resource("a", "CMPE150", "Midterm Soruları", courseName="Intro"),
            resource("b", "CMPE150", "Ders Notu"),
        ))
        assert len(groups) == 1
        group = groups[0]
        assert group.code == "CMPE150"
        assert group.name == "Intro"
        assert group.total_count == 2
        assert group.types == ["Midterm Soruları", "Ders Notu"]

    def test_first_resource_seeds_metadata(self):
        groups = ResourceAggregator.group(parse(
            resource("a", "X1", "Syllabus", courseName="First", department="D1"),
            resource("b", "X1", "Syllabus", courseName="Second", department="D2"),
        ))
        assert groups[0].name == "First"
        assert groups[0].department == "D1"

    def test_items_keep_admitted_order(self):
        groups = ResourceAggregator.group(parse(
            resource("z", "X1", "Syllabus"),
            resource("a", "X1", "Syllabus"),
        ))
        assert [r.id for r in groups[0].by_type["Syllabus"]] == ["z", "a"]

    def test_sorted_by_code(self, resources):
        groups = ResourceAggregator.group(resources)
        assert [g.code for g in groups] == ["CMPE150", "cmpe250", "MATH101", "PHYS101"]

    @pytest.mark.parametrize("config", [
        FilterConfig(),
        FilterConfig(search_text="cmpe"),
        FilterConfig(resource_type="Ders Notu"),
        FilterConfig(term="2023 Güz"),
        FilterConfig(saved_only=True),
        FilterConfig(search_text="calc", term="2023 Güz"),
        FilterConfig(resource_type="Proje/Ödev"),
    ])
    def test_counts_conserved(self, resources, config):
        pipeline = FilterPipeline(saved={"r1", "r4"})
        pipeline.set_source(resources)
        admitted = pipeline.apply(config)
        groups = ResourceAggregator.group(admitted)
        assert sum(g.total_count for g in groups) == len(admitted)
        assert {r.id for g in groups for items in g.by_type.values() for r in items} == {r.id for r in admitted}
        for g in groups:
            assert g.total_count == sum(len(items) for items in g.by_type.values())
            assert all(items for items in g.by_type.values())

    def test_case_sensitive_codes_are_distinct(self):
        groups = ResourceAggregator.group(parse(
            resource("a", "cmpe150", "Syllabus"),
            resource("b", "CMPE150", "Syllabus"),
        ))
        assert [g.code for g in groups] == ["CMPE150", "cmpe150"]

    def test_empty(self):
        assert ResourceAggregator.group([]) == []

    def test_to_dict(self):
        group = ResourceAggregator.group(parse(resource("a", "X1", "Syllabus")))[0]
        data = group.to_dict()
        assert data["code"] == "X1"
        assert data["total_count"] == 1
        assert data["by_type"]["Syllabus"][0]["courseCode"] == "X1"


class TestCollationKey:

    def test_accents_and_case_fold(self):
        assert sorted(["Çizim", "Data", "calc"], key=collation_key) == ["calc", "Çizim", "Data"]

    def test_course_group_add(self):
        group = CourseGroup(code="X1")
        group.add(parse(resource("a", "X1", "Syllabus"))[0])
        assert group.total_count == 1
