import io
import json

from pipeclean.jsonformat import scrub_stream
from pipeclean.policy import Policy, default_policy
from pipeclean.scrubber import Scrubber


def run(text, policy):
    out = io.StringIO()
    n = scrub_stream(Scrubber("", False, policy, None), io.StringIO(text), out)
    return n, out.getvalue()


def test_null_policy_preserves_documents():
    docs = [{"a": [1, "two", {"b": None}]}, ["x", True]]
    n, out = run("\n".join(json.dumps(d) for d in docs), Policy())
    assert n == 2
    assert [json.loads(line) for line in out.splitlines()] == docs


def test_output_is_compact_sorted_and_html_escaped():
    _, out = run('{"b": 1, "a": "<"}', Policy())
    assert out == '{"a":"\\u003c","b":1}\n'


def test_email_field_masked():
    _, out = run('{"email": "someone@example.com"}', default_policy())
    masked = json.loads(out)["email"]
    assert masked != "someone@example.com"
    assert masked.endswith(".com") and len(masked) == len("someone@example.com")


def test_stops_at_malformed_document():
    n, out = run('{"a": 1} {broken', Policy())
    assert n == 1
    assert json.loads(out) == {"a": 1}


def test_empty_input():
    assert run("   \n", Policy()) == (0, "")