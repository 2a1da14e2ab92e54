import json
import re

import pytest
import yaml

from pipeclean.markov import MarkovModel
from pipeclean.models import MatchModel
from pipeclean.policy import Disposition, FieldNameRule, HeuristicRule, Policy, default_policy
from pipeclean.scrubber import Scrubber
from pipeclean.verifier import Verifier

SALT = "test-salt"


def scrub(s, field):
    return Scrubber(SALT, False, default_policy(), None).scrub_string(s, [field])


def scrub_with_policy(s, field, policy, models):
    assert policy.validate(models) == []
    return Scrubber(SALT, False, policy, models).scrub_string(s, [field])


def test_default_deep_json():
    got = scrub('{"email":"someone@example.com"}', "someJsonField")
    data = json.loads(got)
    masked = data["email"]
    assert masked != "someone@example.com"
    assert len(masked) == len("someone@example.com")
    assert masked.endswith(".com")
    assert masked[7] == "@"


@pytest.mark.parametrize("address", ["someone@example.com", "first.last@example.com"])
def test_default_email(address):
    got = scrub(address, "email")
    assert got != address
    assert len(got) == len(address)
    assert got.endswith(".com")
    assert got.index("@") == address.index("@")


def test_default_heuristic():
    models = {"fruit": MatchModel([re.compile("apple|orange")])}
    pol = Policy(heuristic=[HeuristicRule("fruit", out=Disposition("erase"))])
    for value, want in {"apple": "", "horse": "horse"}.items():
        assert Scrubber(SALT, False, pol, models).scrub_string(value, None) == want


def test_default_numerics():
    assert scrub("74", "someField") == "74"


def test_default_phone_masks_digits_but_keeps_zero_and_punctuation():
    got = scrub("abc-100", "phone")
    assert len(got) == 7
    assert got[3] == "-"
    assert got.endswith("00")
    assert got != "abc-100"


@pytest.mark.parametrize("name,ext", [("something.ipynb", ".ipynb"), ("something.pdf", ".pdf")])
def test_mask_preserves_extension(name, ext):
    got = scrub(name, "email")
    assert got.endswith(ext)
    assert len(got) == len(name)
    assert got != name


def test_mask_preserves_url_structure():
    url = "https://foo.something.com/baz/quux"
    got = scrub(url, "email")
    assert got.startswith("https://")
    assert got.endswith("/" + got.split("/")[-1])
    assert len(got) == len(url)
    assert [i for i, c in enumerate(got) if c in "/."] == [i for i, c in enumerate(url) if c in "/."]
    assert got.split("/")[2].endswith(".com")
    assert got != url


def test_mask_url_without_dot_in_host():
    url = "https://intranet/baz/quux"
    got = scrub(url, "email")
    assert got.startswith("https://")
    assert len(got) == len(url)
    assert got.count("/") == url.count("/")
    assert got != url


def test_disposition_pass():
    policy = Policy(
        field_name=[
            FieldNameRule(re.compile("foobar"), Disposition("pass")),
            FieldNameRule(re.compile("foo"), Disposition("mask")),
        ]
    )
    masked = scrub_with_policy("mask me", "foo", policy, None)
    assert masked != "mask me"
    assert len(masked) == 7 and masked[4] == " "
    assert scrub_with_policy("mask me", "foobar", policy, None) == "mask me"


@pytest.mark.parametrize("out,expected", [("replace({})", "{}"), ("replace((()))", "(())")])
def test_disposition_replace(out, expected):
    as_field_name = Policy(field_name=[FieldNameRule(re.compile("foo"), Disposition(out))])
    assert scrub_with_policy("replace-me", "foo", as_field_name, None) == expected

    as_heuristic = Policy(heuristic=[HeuristicRule("bar", out=Disposition(out))])
    models = {"bar": MatchModel([re.compile(r'^\{\\?"p\\?":')])}
    assert scrub_with_policy(r'{\"p\": \"\"}', "foo", as_heuristic, models) == expected


def test_data_preserve_json():
    before = json.dumps({"ops": [{"insert": "Hello <b>"}, {"attributes": {"bold": True}, "insert": "x & y"}], "n": 3})
    after = scrub_with_policy(before, "irrelevant", Policy(), None)
    assert json.loads(after) == json.loads(before)


def test_yaml_data_is_scrubbed():
    got = scrub("---\nemail: someone@example.com\n", "irrelevant")
    data = yaml.safe_load(got)
    assert data["email"].endswith(".com")
    assert data["email"] != "someone@example.com"


def test_ruby_hash_emptied():
    assert scrub("--- !ruby/hash:Foo\na: 1\n", "irrelevant") == "{}"


def test_erase_string():
    policy = Policy(
        field_name=[
            FieldNameRule(re.compile("secret_note"), Disposition("erase")),
            FieldNameRule(re.compile("email"), Disposition("mask")),
        ]
    )
    sc = Scrubber(SALT, False, policy, None)
    assert sc.erase_string("x", ["secret_note"]) is True
    assert sc.erase_string("x", ["email"]) is False
    assert sc.erase_string("x", ["other"]) is False


def test_mask_word_deterministic_and_salt_independent():
    a = Scrubber("one").mask_word("Hello 0123")
    b = Scrubber("two").mask_word("Hello 0123")
    assert a == b
    assert a[0].isupper() and a[1:5].islower()
    assert a[5:7] == " 0"


def test_generate_matches_case():
    model = MarkovModel(2, " ")
    model.train("i like pizza")
    policy = Policy(field_name=[FieldNameRule(re.compile("food"), Disposition("generate(food)"))])
    sc = Scrubber(SALT, False, policy, {"food": model})
    assert sc.scrub_string("SOME VALUE", ["food"]) == "I LIKE PIZZA"


def test_generate_with_mask_all_masks():
    model = MarkovModel(2, " ")
    model.train("i like pizza")
    policy = Policy(field_name=[FieldNameRule(re.compile("food"), Disposition("generate(food)"))])
    sc = Scrubber(SALT, True, policy, {"food": model})
    got = sc.scrub_string("tacos", ["food"])
    assert len(got) == 5 and got != "I LIKE PIZZA"


def test_generate_unknown_model_raises():
    policy = Policy(field_name=[FieldNameRule(re.compile("food"), Disposition("generate(nope)"))])
    with pytest.raises(ValueError):
        Scrubber(SALT, False, policy, {}).scrub_string("x", ["food"])


def test_verifier_records_fields():
    policy = default_policy()
    verifier = Verifier(policy)
    sc = Scrubber(SALT, False, policy, None, verifier)
    sc.scrub_string("someone@example.com", ["email"])
    sc.scrub_string("plain", ["other"])
    report = verifier.report()
    assert report.field_name[0].fields == ["email"]
    assert str(report.summary.load) == "50.0%"