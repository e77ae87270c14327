from msa_property_sync.contacts import CompanyContactMerger
from msa_property_sync.models import CompanyContact
from msa_property_sync.storage import SQLiteStore


def test_first_sighting_creates_contact(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    try:
        merger = CompanyContactMerger(store)
        assert merger.upsert_company_contact("ACME PROPERTIES, LLC.", "Orange") is True
        contact = store.get_company_contact("Acme Properties LLC")
        assert contact.counties == ["Orange"]
    finally:
        store.close()


def test_counties_only_grow_and_match_case_insensitively(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    try:
        merger = CompanyContactMerger(store)
        merger.upsert_company_contact("Acme Properties LLC", "Orange")
        assert merger.upsert_company_contact("acme properties llc", "ORANGE") is False
        assert merger.upsert_company_contact("Acme Properties LLC", "Los Angeles County, California") is False
        assert store.get_company_contact("Acme Properties LLC").counties == ["Orange", "Los Angeles"]
    finally:
        store.close()


def test_existing_contact_details_are_left_alone(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    try:
        store.insert_company_contact(
            CompanyContact(
                company_name="Blue Sky Holdings Inc",
                counties=["Denver"],
                contact_name="Pat Lee",
                contact_email="pat@example.com",
                phone_number="303-555-0100",
            )
        )
        merger = CompanyContactMerger(store)
        assert merger.upsert_company_contact("BLUE SKY HOLDINGS INC", "Adams") is False
        contact = store.get_company_contact("Blue Sky Holdings Inc")
        assert contact.contact_name == "Pat Lee"
        assert contact.contact_email == "pat@example.com"
        assert contact.phone_number == "303-555-0100"
        assert contact.counties == ["Denver", "Adams"]
    finally:
        store.close()


def test_blank_inputs_are_ignored(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    try:
        merger = CompanyContactMerger(store)
        assert merger.upsert_company_contact("", "Orange") is False
        assert merger.upsert_company_contact("Acme LLC", "  ") is False
        assert merger.upsert_company_contact(None, None) is False
        assert store.list_company_contacts() == []
    finally:
        store.close()


def test_punctuation_variants_merge_into_one_contact(tmp_path):
    store = SQLiteStore(str(tmp_path / "sync.sqlite"))
    try:
        store.insert_company_contact(
            CompanyContact(company_name="A.B.C. Holdings LLC", counties=["Orange"])
        )
        merger = CompanyContactMerger(store)
        assert merger.upsert_company_contact("ABC HOLDINGS, LLC", "San Diego") is False
        contacts = store.list_company_contacts()
        assert [c.company_name for c in contacts] == ["A.B.C. Holdings LLC"]
        assert contacts[0].counties == ["Orange", "San Diego"]
    finally:
        store.close()
