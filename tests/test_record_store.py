"""Tests for the SQLAlchemy record store."""

import enum
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Table, Text
from sqlalchemy.orm import declarative_base, relationship

from indexsync.database import DatabaseManager, SqlAlchemyRecordStore, declared_type
from indexsync.export import BulkExportPaginator, DocumentExporter, FieldType, RelationKind


Base = declarative_base()


class FAQStatus(enum.Enum):
    open = "open"
    closed = "closed"


faq_tags = Table(
    "faq_tags",
    Base.metadata,
    Column("faq_id", ForeignKey("faqs.id"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id"), primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    title = Column(String(100))

    faqs = relationship("FAQ", back_populates="category")


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    title = Column(String(100))
    content = Column(Text)


class FAQ(Base):
    __tablename__ = "faqs"

    id = Column(Integer, primary_key=True)
    Name = Column(String(255))
    Answer = Column(Text)
    Sort = Column(Integer)
    Price = Column(Numeric(10, 2))
    Created = Column(DateTime)
    Status = Column(Enum(FAQStatus))
    ShowInSearch = Column(Boolean, default=True)
    category_id = Column(ForeignKey("categories.id"))

    category = relationship("Category", back_populates="faqs")
    tags = relationship("Tag", secondary=faq_tags, order_by="Tag.id")


class Page(Base):
    __tablename__ = "pages"

    id = Column(Integer, primary_key=True)
    Title = Column(String(255))


class PageLive(Base):
    __tablename__ = "pages_live"

    id = Column(Integer, primary_key=True)
    Title = Column(String(255))


class Article(Base):
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True)
    Title = Column(String(255))
    PublishDate = Column(DateTime, nullable=True)


@pytest.fixture
def db():
    manager = DatabaseManager("sqlite://")
    manager.create_tables(Base.metadata)
    yield manager
    manager.close()


@pytest.fixture
def store(db):
    session = db.get_session()

    billing = Category(id=1, title="Billing")
    tags = [Tag(id=1, title="Plans", content="About plans"), Tag(id=2, title="Invoices")]
    session.add(billing)
    session.add_all(tags)
    for faq_id in range(1, 31):
        session.add(FAQ(
            id=faq_id,
            Name=f"Question {faq_id}",
            Answer=f"<p>Answer {faq_id}</p>",
            Sort=faq_id,
            Price=12.5,
            Created=datetime(2024, 3, 1, 10, 0, 0),
            Status=FAQStatus.open,
            ShowInSearch=faq_id % 10 != 0,
            category=billing,
            tags=tags if faq_id == 1 else []
        ))
    session.add(Page(id=1, Title="Draft"))
    session.add(Page(id=2, Title="Never published"))
    session.add(PageLive(id=1, Title="Published"))
    session.add(Article(id=1, Title="Undated", PublishDate=None))
    session.add(Article(id=2, Title="Also undated", PublishDate=None))
    session.add(Article(id=3, Title="Dated", PublishDate=datetime(2024, 5, 6, 7, 8, 9)))
    session.commit()

    store = SqlAlchemyRecordStore(session)
    store.register(FAQ, field_types={"Answer": "HTMLText"}, searchable_attributes=["Sort"])
    store.register(Category)
    store.register(Page, live_model=PageLive)
    store.register(Article)
    yield store
    store.close()


class TestDeclaredType:
    """Column type to declared type name mapping."""

    def test_column_types(self):
        columns = FAQ.__table__.c
        assert declared_type(columns.id) == "PrimaryKey"
        assert declared_type(columns.category_id) == "ForeignKey"
        assert declared_type(columns.Name) == "Varchar"
        assert declared_type(columns.Answer) == "Text"
        assert declared_type(columns.Sort) == "Int"
        assert declared_type(columns.Price) == "Decimal"
        assert declared_type(columns.Created) == "Datetime"
        assert declared_type(columns.Status) == "Enum"
        assert declared_type(columns.ShowInSearch) == "Boolean"


class TestSqlAlchemyRecordStore:
    """Schema registration and record access."""

    def test_schema(self, store):
        schema = store.schema_for("FAQ")

        assert schema.fields["ID"] == "PrimaryKey"
        assert schema.fields["Answer"] == "HTMLText"
        assert "id" not in schema.fields
        assert schema.has_visibility_flag
        assert schema.searchable_attributes == ("Sort",)
        assert schema.relations["category"].kind == RelationKind.SINGLE
        assert schema.relations["tags"].kind == RelationKind.MANY_MANY
        assert store.schema_for("Category").relations["faqs"].kind == RelationKind.MANY
        assert store.schema_for("Page").versioned

    def test_unregistered_class(self, store):
        with pytest.raises(KeyError):
            store.schema_for("Tag")

    def test_to_map_renames_primary_key(self, store):
        values = store.to_map(store.by_id("FAQ", 3))
        assert values["ID"] == 3
        assert values["Name"] == "Question 3"

    def test_visibility_filtered_query(self, store):
        query = store.query("FAQ", only_visible=True)

        assert query.count() == 27
        assert [faq.id for faq in query.limit(5, 8)] == [9, 11, 12, 13, 14]
        assert store.query("FAQ").count() == 30

    def test_live_version(self, store):
        assert store.get_live("Page", 1).Title == "Published"
        assert store.get_live("Page", 2) is None


class TestExportFromDatabase:
    """Exporting mapped records end to end."""

    def test_export_record(self, store):
        document = DocumentExporter(store).export(store.by_id("FAQ", 1))

        assert document.external_id == 1
        assert document.get_field("Name").type == FieldType.STRING
        assert document.get_field("Answer").type == FieldType.TEXT
        assert document.get_field("Answer").value == "Answer 1"
        assert document.get_field("Sort").type == FieldType.STRING
        assert document.get_field("Price").value == 12.5
        assert document.get_field("Created").value == "2024-03-01T10:00:00+00:00"
        assert document.get_field("category_id").value == 1
        assert document.get_field("category").value == "Billing"
        assert document.get_field("tags").value == ["Plans", "Invoices"]
        assert document.get_field("tags_Content").value == ["About plans"]

    def test_export_versioned_record(self, store):
        exporter = DocumentExporter(store)

        assert exporter.export(store.by_id("Page", 1)).get_field("Title").value == "Published"
        assert exporter.export(store.by_id("Page", 2)) is None

    def test_bulk_export(self, store):
        paginator = BulkExportPaginator(DocumentExporter(store))

        documents = paginator.bulk_export("FAQ")

        assert len(documents) == 27
        assert paginator.page_sizes == [20, 7]

    def test_enum_values_are_plain(self, store):
        assert store.to_map(store.by_id("FAQ", 2))["Status"] == "open"

    def test_null_dates_do_not_drop_records(self, store):
        documents = BulkExportPaginator(DocumentExporter(store)).bulk_export("Article")

        assert [document.external_id for document in documents] == [1, 2, 3]
        assert documents[0].get_field("PublishDate") is None
        assert documents[0].get_field("Title").value == "Undated"
        assert documents[2].get_field("PublishDate").value == "2024-05-06T07:08:09+00:00"

    def test_draft_is_released_with_live_version(self, store):
        draft = store.by_id("Page", 1)

        DocumentExporter(store).export(draft)

        assert draft not in store.session


class TestRecordStoreLifecycle:
    """Closing the store."""

    def test_close_disposes_owned_database(self, db):
        database = MagicMock()
        store = SqlAlchemyRecordStore(db.get_session(), database=database)

        store.close()

        database.close.assert_called_once_with()

    def test_close_without_owned_database(self, db):
        store = SqlAlchemyRecordStore(db.get_session())
        store.close()
        assert store.database is None
