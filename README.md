# ubox

A small toolbox for working with compact tagged binary messages and the
JSON that travels alongside them. It needs nothing outside the Python
standard library.

## What is inside

| Module              | Purpose                                                                 |
|---------------------|-------------------------------------------------------------------------|
| `ubox.avl`          | Balanced ordered tree (`AvlTree`) with optional duplicate keys and ≤ / ≥ lookups |
| `ubox.b64`          | Strict Base64 encoding and decoding (`encode`, `decode`, `Base64Error`) |
| `ubox.blob`         | Big-endian tag/length/value attributes (`BlobBuf`, `BlobAttr`, `parse`, `parse_untrusted`) |
| `ubox.kvlist`       | Sorted key/value store holding byte values (`KvList`)                   |
| `ubox.blobmsg`      | Named, typed attributes on top of blobs: tables, arrays, strings, integers, doubles (`BlobmsgBuf`, `BlobmsgPolicy`) |
| `ubox.blobmsg_json` | Conversion between blobmsg attributes and JSON text                     |
| `ubox.jshn`         | Conversion between JSON and shell `json_*` statements / environment variables |

## Installing

```
pip install .
```

For running the tests:

```
pip install ".[test]"
pytest
```

## Quick tour

### Ordered trees

```python
from ubox.avl import AvlTree, strcmp

tree = AvlTree(strcmp, False)
tree.insert("beta", 2)
tree.insert("alpha", 1)
tree.insert("gamma", 3)

node = tree.find("beta")              # None when the key is absent
le = tree.find_lessequal("delta")     # the "beta" node
ge = tree.find_greaterequal("delta")  # the "gamma" node
```

Iterating over the tree walks the nodes in key order, and `reversed(tree)`
walks them backwards. `first()` and `last()` return the end nodes, `delete`
removes a node and `clear` empties the tree. A tree that does not allow
duplicates raises `DuplicateKeyError` when a key is inserted twice.

### Base64

```python
from ubox import b64

text = b64.encode(b"hello")
assert b64.decode(text) == b"hello"
```

`decode` skips whitespace anywhere, demands correct padding and refuses
non-zero trailing bits; any violation raises `Base64Error`.

### Key/value store

```python
from ubox.kvlist import KvList, strlen

kv = KvList(strlen)
kv.set("name", "value")
kv.get("name")        # b"value\x00"
list(kv.items())      # pairs in name order
```

### Messages

`BlobmsgBuf` builds a top-level table of named fields. Nested tables and
arrays are opened with `open_table` / `open_array` and closed with the
matching `close_*` call, or more conveniently with the `table` and `array`
context managers:

```python
from ubox.blobmsg import BlobmsgBuf

buf = BlobmsgBuf()
buf.add_string("message", "Hello, world!")
with buf.table("testdata"):
    buf.add_double("double", 133.7)
    buf.add_u32("hello", 1)
    buf.add_string("world", "2")
with buf.array("list"):
    buf.add_u32(None, 0)
    buf.add_u32(None, 1)
```

`ubox.blobmsg.parse` picks fields out of a message by name and type using a
list of `BlobmsgPolicy` entries, `parse_array` assigns them by position, and
the `get_*` / `cast_*` functions read values back.

### JSON

```python
from ubox.blobmsg import BlobmsgBuf
from ubox.blobmsg_json import add_json_from_string, format_json

buf = BlobmsgBuf()
add_json_from_string(buf, '{"a": 1, "b": [true, null]}')
format_json(buf.head)             # compact JSON text
format_json(buf.head, True, 0)    # indented with tabs
```

Invalid or non-object JSON input raises `BlobmsgJsonError`.

## Command-line tool: `jshn`

Turns a JSON object into shell statements, or rebuilds JSON from shell
variables in the environment.

```
jshn -r '{"a": 1, "b": "x"}'      # print json_add_* statements
jshn -R input.json                # the same, reading a file
jshn -w                           # print JSON built from the environment
jshn -i -w                        # the same, indented
jshn -n -o output.json            # write JSON to a file, without a trailing newline
jshn -p PREFIX_ -w                # read variables that start with PREFIX_
```

The same work is available from Python as `ubox.jshn.to_shell(text)` and
`ubox.jshn.from_env(environ, prefix, indent)`.

Exit status is 0 on success, 1 when the input is not a JSON object, 2 on a
usage error and 3 when a file cannot be opened.

## What this package does not do

It does not interpret JSON-encoded rule scripts and has no tokenizer for
JSONPath-style expressions; it offers only the message, JSON and shell
conversion pieces listed above.