# pipeclean

A streaming data sanitizer. It reads a MySQL dump (or a stream of JSON
documents) on standard input and writes a copy with sensitive values
masked, erased, replaced or regenerated, so that it can sit in the middle
of a shell pipeline.

## Installation

```
pip install .
```

This installs the `pipeclean` command. The only runtime dependency is
PyYAML.

## How it decides what to scrub

A configuration file (JSON) holds two sections. Keys are matched
case-insensitively.

- `Learning` declares named models and how to build them. A model is one of
  `Dict` (a word list), `Markov` (a Markov chain with an `Order` of at least
  1 and a `Delim` of `""` for characters or `" "` for words) or `Match`
  (a list of regular expressions).
- `Scrubbing` is the policy. `fieldname` rules match field names with a
  regular expression (`In`); `heuristic` rules name a model (`In`) and apply
  when that model recognises a value with confidence of at least `1 - P`.
  Field-name rules are tried first, in order; then heuristic rules.

Each rule's `Out` is a disposition:

- `erase` – drop the value (SQL `NULL` in a dump, an empty string elsewhere)
- `mask` – scramble ASCII letters and nonzero digits, keeping length, case,
  zeros and punctuation; the top-level domain of an e-mail address, a short
  file extension, and the scheme and host TLD of a URL are kept
- `generate(model)` – replace with text produced by a Markov model, in the
  same letter case as the original
- `replace(text)` – substitute a fixed value
- `pass` – leave the value as it is (field-name rules only)

A string value that matches no rule but holds a JSON object or array, or a
YAML document starting with `---`, is parsed and scrubbed recursively.
Serialized Ruby hashes (`--- !ruby/hash…`) become `{}`.

Without a configuration file, fields whose names contain `email`, `phone`
or a postal/zip code are masked. A configuration's `fieldname` or
`heuristic` list, when present, replaces the default one.

```json
{
  "Learning": {
    "givenName": {"Markov": {"Order": 5, "Delim": ""}}
  },
  "Scrubbing": {
    "fieldname": [
      {"In": "email", "Out": "mask"},
      {"In": "first_name", "Out": "generate(givenName)"}
    ],
    "heuristic": []
  }
}
```

Masking is deterministic: the same input always yields the same output.

In a dump, each value of an `INSERT` is known by up to three names: the
column name, `table.column`, and `table.N` (its position in the row).
Column names come from the statement itself, or from `CREATE TABLE`
statements in files passed with `-x`.

## Commands

Every command accepts `-m/--mode` (`mysql` or `json`, default `mysql`)
and `-v/--verbose`.

Train the models named in the configuration from a dump, keeping any
models already on disk (`-r`), using a schema file for column names
(`-x`). Only models that a field-name rule `generate(...)`s are trained,
from the values of the matching fields:

```
cat dump.sql | pipeclean learn -c config.json -r -x schema.sql models/
```

Scrub a dump. Model arguments may be directories of model files or single
model files:

```
cat dump.sql | pipeclean scrub -c config.json -x schema.sql models/ > clean.sql
```

Add `-k/--mask` to mask everything that would otherwise be generated, and
`-s/--salt` to pass a salt. Use `-m json` to scrub a stream of JSON
documents instead; each is written on its own line.

Check how effective a policy is without writing any output; a YAML report
of each rule's fields, frequency and safety, and a summary, is printed:

```
cat dump.sql | pipeclean verify -c config.json -x schema.sql models/
```

Train a single model from one word or phrase per line and print it:

```
cat names.txt | pipeclean train markov:words:5 > models/givenName.markov.json
cat phrases.txt | pipeclean train markov:sentences:3 > models/phrase.markov.json
cat words.txt | pipeclean train dict > models/words.dict.txt
```

Try a model out: print ten generated texts, or print the input lines the
model recognises with at least the given confidence (default 0.5):

```
pipeclean generate models/givenName.markov.json
cat candidates.txt | pipeclean recognize --confidence 0.8 models/givenName.markov.json
```

Print every string value of a field found in a dump:

```
cat dump.sql | pipeclean extract -x schema.sql email
```

Errors are reported on standard error; the exit status is 45 for bad
arguments, 62 for an unusable input or model file, 33 for an internal
inconsistency and 58 for an unsupported mode.

## Model files

A models directory holds one file per model, named after the model:
`<name>.markov.json`, `<name>.dict.txt` (one entry per line) or
`<name>.match.txt` (one regular expression per line). Files whose names
start with a dot are ignored.

## Using it from Python

```python
from pipeclean.policy import default_policy
from pipeclean.scrubber import Scrubber
from pipeclean.mysql import Context, scrub_lines

scrubber = Scrubber(salt="", policy=default_policy())
scrubber.scrub_string("someone@example.com", ["email"])

context = Context()
context.scan(open("schema.sql").read())
with open("dump.sql") as dump:
    for out in scrub_lines(context, scrubber, dump):
        print(out, end="")
```

## Limitations

- Dumps are processed one line at a time. A statement that spans several
  lines, or a line that does not parse, is copied to the output unchanged,
  so its values are not scrubbed. Only `INSERT`/`REPLACE … VALUES`
  statements are rewritten; everything else passes through as written.
- `learn` and `extract` support only the `mysql` mode.
- `Match` models are written by hand; training does not change them.
- Processing is single-threaded.