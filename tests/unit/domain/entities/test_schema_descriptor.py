"""Unit tests for schema descriptors and record entities."""

from reportflow.domain.entities import (
    SYSTEM_FIELD_NAMES,
    Caller,
    FieldSpec,
    FieldType,
    RecordPage,
    RecordStatus,
    Role,
    SchemaDescriptor,
    StorageType,
)


def test_build_appends_system_fields_after_author_fields():
    descriptor = SchemaDescriptor.build(
        "schema-1",
        "papers",
        [
            FieldSpec("title", StorageType.TEXT, required=True, source_type=FieldType.TEXT),
            FieldSpec("year", StorageType.NUMBER, source_type=FieldType.NUMBER),
        ],
    )

    names = list(descriptor.fields)
    assert names[:2] == ["title", "year"]
    assert set(names[2:]) == SYSTEM_FIELD_NAMES
    assert descriptor.author_field_names == ["title", "year"]
    assert descriptor.fields["status"].default == RecordStatus.PENDING.value
    assert descriptor.fields["submitted"].default is False


def test_build_last_duplicate_wins():
    descriptor = SchemaDescriptor.build(
        "schema-1",
        "papers",
        [
            FieldSpec("title", StorageType.TEXT),
            FieldSpec("title", StorageType.NUMBER),
        ],
    )
    assert descriptor.author_field_names == ["title"]
    assert descriptor.fields["title"].storage_type == StorageType.NUMBER


def test_json_fields_round_trip():
    descriptor = SchemaDescriptor.build(
        "schema-1",
        "papers",
        [FieldSpec("email", StorageType.TEXT, unique=True, source_type=FieldType.EMAIL)],
    )
    restored = SchemaDescriptor.from_json_fields("schema-1", "papers", descriptor.to_json_fields())
    assert restored.fields == descriptor.fields


def test_record_page_total_pages():
    assert RecordPage(records=[], current_page=2, total_count=25, limit=10).total_pages == 3
    assert RecordPage(records=[], current_page=1, total_count=20, limit=10).total_pages == 2
    assert RecordPage(records=[], current_page=1, total_count=0, limit=10).total_pages == 0


def test_caller_scope():
    moderator = Caller.moderator("mod-1", ["College A"], ["Physics", "Chemistry"])
    assert moderator.role == Role.MODERATOR
    assert moderator.covers("College A", "Physics")
    assert not moderator.covers("College B", "Physics")
    assert not moderator.covers("College A", "Biology")


def test_caller_context():
    submitter = Caller.submitter("user-1", "College A", "Physics")
    context = submitter.context()
    assert context.submitted_by == "user-1"
    assert context.college == "College A"
    assert context.department == "Physics"
