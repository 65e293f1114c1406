# wtr

Look up Rust crate documentation from docs.rs without leaving the terminal.

`wtr` downloads the rustdoc JSON that docs.rs publishes for a crate, caches it
on disk, and prints the signature and summary of the item you ask for.

## Installation

```
pip install .
```

## Usage

```
wtr <crate>::<path> [options]
```

Examples:

```
wtr jiff::Timestamp
wtr serde::Serialize --full
wtr rangemap::RangeMap --methods
wtr rangemap::RangeMap::insert
wtr tokio::spawn --version 1.40.0
```

Options:

| Option          | Meaning                                        |
|-----------------|------------------------------------------------|
| `-f`, `--full`    | Show the full documentation                    |
| `-m`, `--methods` | List inherent methods                          |
| `-t`, `--traits`  | Show trait implementations                     |
| `-a`, `--all`     | All of the above                               |
| `--no-color`    | Disable colours (`NO_COLOR` is also respected) |
| `--refresh`     | Bypass the cache and fetch again               |
| `--version`     | Crate version to look up (default: `latest`)   |

If you run `wtr` inside a Cargo project and give no `--version`, the version of
a direct dependency with that name is taken from `cargo metadata`. The header
then also tells you whether a newer release exists on crates.io.

Only crates that docs.rs built with rustdoc JSON (format version 39 or later)
can be looked up.

## Caching

Downloaded documentation is stored under the user cache directory in a `wtr`
folder, one sub-folder per crate. The version that `latest` resolves to is
remembered for 24 hours. Use `--refresh` to fetch again.

## Using it from Python

```python
from wtr.fetch import parse_rustdoc_json
from wtr.lookup import lookup_item
from wtr.render import render_item_summary

with open("rangemap.json", "rb") as fh:
    krate = parse_rustdoc_json(fh.read(), "rangemap")

result = lookup_item(krate, ["RangeMap", "insert"])
print(render_item_summary(result.item, krate))
```