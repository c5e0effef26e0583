#!/usr/bin/env python3
"""
Test cases for definition extraction over parsed translation units.
"""

import pytest

from clangpudge.emitter import render
from clangpudge.extractor import DefinitionExtractor
from clangpudge.file_filter import SourceFileSet
from clangpudge.records import FileRecordSet

ITANIUM_TARGET = ["-target", "x86_64-unknown-linux-gnu"]


@pytest.fixture
def header_project(temp_project):
    header = temp_project / "include" / "util.h"
    header.write_text(
        """#ifndef UTIL_H
#define UTIL_H

static inline int clamp(int v, int lo, int hi) {
    if (v < lo) return lo;
    if (v > hi) return hi;
    return v;
}

int scale(int v);

#endif
"""
    )
    source = temp_project / "src" / "util.c"
    source.write_text(
        """#include "util.h"

int scale(int v)
{
    return clamp(v * 2, 0, 100);
}
"""
    )
    return temp_project, source, header


def test_records_only_for_requested_files(header_project, parse):
    project, source, header = header_project
    tu = parse(source, [f"-I{project / 'include'}"])

    records = DefinitionExtractor([str(source)]).extract_translation_unit(tu)

    assert list(records.files) == [str(source)]
    assert [r.model_dump() for r in records.records_for(str(source))] == [
        {"name": "scale", "start": 3, "end": 6}
    ]


def test_header_definitions_keyed_by_header_path(header_project, parse):
    project, source, header = header_project
    tu = parse(source, [f"-I{project / 'include'}"])

    records = DefinitionExtractor([str(source), str(header)]).extract_translation_unit(tu)

    assert set(records.files) == {str(source), str(header)}
    clamp = records.records_for(str(header))
    assert [(r.name, r.start, r.end) for r in clamp] == [("clamp", 4, 8)]


def test_paths_must_match_exactly(header_project, parse):
    project, source, header = header_project
    tu = parse(source, [f"-I{project / 'include'}"])
    # Same file reached through a `..` component is not the same key.
    roundabout = project / "src" / ".." / "src" / "util.c"

    records = DefinitionExtractor([str(roundabout)]).extract_translation_unit(tu)

    assert len(records) == 0


def test_two_files_one_function_each(temp_project, parse):
    first = temp_project / "src" / "a.c"
    first.write_text("int a(void) { return 1; }\n")
    second = temp_project / "src" / "b.c"
    second.write_text("int b(void)\n{\n    return 2;\n}\n")

    extractor = DefinitionExtractor(SourceFileSet([str(first), str(second)]))
    records = FileRecordSet()
    for path in (first, second):
        records.merge(extractor.extract_translation_unit(parse(path)))

    document = records.to_document()
    assert set(document) == {str(first), str(second)}
    assert document[str(first)] == [{"name": "a", "start": 1, "end": 1}]
    assert document[str(second)] == [{"name": "b", "start": 1, "end": 4}]


def test_range_spans_signature_through_closing_brace(temp_project, parse):
    source = temp_project / "src" / "shape.cpp"
    source.write_text(
        """
struct Shape {
    virtual ~Shape();
    virtual int sides() const = 0;
};

Shape::~Shape()
{
}

int
perimeter(const Shape& s,
          int length)
{
    return s.sides() * length;
}
"""
    )
    tu = parse(source, ITANIUM_TARGET)

    records = DefinitionExtractor([str(source)]).extract_translation_unit(tu)

    assert [(r.name, r.start, r.end) for r in records.records_for(str(source))] == [
        ("_ZN5ShapeD1Ev", 7, 9),
        ("_Z9perimeterRK5Shapei", 11, 16),
    ]


def test_nested_ranges_are_independent(temp_project, parse):
    source = temp_project / "src" / "nested.cpp"
    source.write_text(
        """int outer() {
    struct Local {
        int get() {
            return 1;
        }
    };
    return Local().get();
}
"""
    )
    tu = parse(source, ITANIUM_TARGET)

    records = DefinitionExtractor([str(source)]).extract_translation_unit(tu)

    assert [(r.start, r.end) for r in records.records_for(str(source))] == [(1, 8), (3, 5)]


def test_unresolved_names_are_kept(temp_project, parse):
    source = temp_project / "src" / "tmpl.cpp"
    source.write_text(
        """template <typename T>
T identity(T v) {
    return v;
}

int use() { return identity(3); }
"""
    )
    tu = parse(source, ITANIUM_TARGET)

    records = DefinitionExtractor([str(source)]).extract_translation_unit(tu)

    assert [(r.name, r.start, r.end) for r in records.records_for(str(source))] == [
        ("", 1, 4),
        ("_Z3usev", 6, 6),
    ]


def test_every_record_has_a_valid_range(header_project, parse):
    project, source, header = header_project
    tu = parse(source, [f"-I{project / 'include'}"])

    records = DefinitionExtractor([str(source), str(header)]).extract_translation_unit(tu)

    for file_records in records.files.values():
        for record in file_records:
            assert 1 <= record.start <= record.end


def test_output_is_deterministic(header_project, parse):
    project, source, header = header_project
    args = [f"-I{project / 'include'}"]
    extractor = DefinitionExtractor([str(source), str(header)])

    first = render(extractor.extract_translation_unit(parse(source, args)))
    second = render(extractor.extract_translation_unit(parse(source, args)))

    assert first == second


def test_header_and_body_from_separate_macros(temp_project, parse):
    source = temp_project / "src" / "split.c"
    source.write_text(
        """#define HDR int f(void)
#define BODY { return 1; }
HDR
BODY
"""
    )
    tu = parse(source)

    records = DefinitionExtractor([str(source)]).extract_translation_unit(tu)

    assert [(r.name, r.start, r.end) for r in records.records_for(str(source))] == [
        ("f", 3, 4)
    ]


def test_function_generated_by_one_macro(temp_project, parse):
    source = temp_project / "src" / "getters.c"
    source.write_text(
        """#define DEFINE_GETTER(name, value) int name(void) { return value; }

DEFINE_GETTER(answer, 42)
DEFINE_GETTER(
    other,
    7)
"""
    )
    tu = parse(source)

    records = DefinitionExtractor([str(source)]).extract_translation_unit(tu)

    assert [(r.name, r.start, r.end) for r in records.records_for(str(source))] == [
        ("answer", 3, 3),
        ("other", 4, 6),
    ]


def test_lambda_gets_its_own_record(temp_project, parse):
    source = temp_project / "src" / "lambda.cpp"
    source.write_text(
        """int apply() {
    auto lam = [](int x) {
        return x + 1;
    };
    return lam(1);
}
"""
    )
    tu = parse(source, ITANIUM_TARGET + ["-std=c++17"])

    records = DefinitionExtractor([str(source)]).extract_translation_unit(tu)

    assert [(r.name, r.start, r.end) for r in records.records_for(str(source))] == [
        ("_Z5applyv", 1, 6),
        ("", 2, 4),
    ]
