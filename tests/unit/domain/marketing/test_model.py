from apsync.domain.marketing.model import AccountMetadata, AuthorizedAccount, Contact


class TestContact:
    def test_named_fields_become_merge_fields(self):
        contact = Contact(email="a@b.co", first_name="Ada", last_name="Lovelace", phone="0123")

        assert contact.all_merge_fields() == {"FNAME": "Ada", "LNAME": "Lovelace", "PHONE": "0123"}

    def test_custom_fields_override(self):
        contact = Contact(email="a@b.co", first_name="Ada", merge_fields={"FNAME": "A.", "BDAY": "12/10"})

        assert contact.all_merge_fields() == {"FNAME": "A.", "BDAY": "12/10"}

    def test_new_members_subscribed_by_default(self):
        assert Contact(email="a@b.co").status == "subscribed"


class TestAuthorizedAccount:
    def test_from_metadata(self):
        metadata = AccountMetadata(account_id="1", account_name="Joe's", data_center="us6")

        account = AuthorizedAccount.from_metadata(metadata, "tok")

        assert account.access_token == "tok"
        assert account.data_center == "us6"
        assert "tok" not in repr(account)
