# gatekeep

Request-side building blocks for web applications, independent of any
particular server:

- **Validation** (`gatekeep.validation`, `gatekeep.validators`): a
  `Validation` context that collects `ValidationError`s from validators
  (`Required`, `Min`, `Max`, `Range`, `MinSize`, `MaxSize`, `Length`,
  `Match`, `Email`, `IPAddr`, `MacAddr`, `Domain`, `URL`, `PureText`,
  `FilePath`). Kept errors can be carried to the next request in a cookie
  value with `encode_validation_errors` and `restore_validation_errors`.
- **Sessions** (`gatekeep.session`, `gatekeep.session_cookie`): a `dict`
  subclass `Session` that serializes non-string values as JSON, follows dotted
  keys such as `"user.name"`, and tracks expiry. `SessionCookieEngine` turns a
  session into an HMAC-signed `Cookie` and back again.
- **Templates** (`gatekeep.template`, `gatekeep.template_engine`,
  `gatekeep.template_adapter`, `gatekeep.template_functions`): a
  `TemplateLoader` that walks template directories, compiles each file with a
  template engine (`JinjaEngine`, registered as `"jinja"`, by default) and
  looks templates up by name and language.
- **Utilities** (`gatekeep.simplestack`, `gatekeep.util`): `SimpleLockStack`,
  a thread-safe bounded object pool; `MimeTypes` for content types by file
  extension; `equal` for loose value comparison; key/value cookie encoding;
  `client_ip` for the client address behind a proxy; `walk`, a directory walk
  that follows symlinked directories.

Requires Python 3.10 or later. Runtime dependencies are `regex`, `jinja2` and
`markupsafe`; the `test` extra adds `pytest`.

## Validation

```python
from gatekeep.validation import Validation

v = Validation()
v.required("").key("name")
v.min_size("ab", 3).key("nickname")
v.email("someone@example.com")

if v.has_errors():
    for key, error in v.error_map().items():
        print(key, str(error))
```

Each check returns a `ValidationResult`; chain `.key(...)`, `.message(...)`
(with `%`-style arguments) or `.message_key(...)` on it to name the field or
override the message. `message_key` passes the key through the
`Validation`'s `translator` callable for its `locale` when one is set.
`check(obj, *validators)` applies several validators in order and returns the
first failure, or the last success. `error_map()` keeps the first error
recorded for each key.

To carry errors over to the next request:

```python
from gatekeep.validation import encode_validation_errors, restore_validation_errors

v.keep()
value = encode_validation_errors(v)        # "" unless keep() was called
errors = restore_validation_errors(value)  # list of ValidationError
```

The validators can also be used on their own, for example
`valid_ip_addr(IPType.IPV4).is_satisfied("10.0.0.1")`,
`valid_pure_text(PureTextMode.NORMAL)` or
`valid_file_path(FilePathMode.ALLOW_RELATIVE_PATH)`.

## Sessions

```python
from gatekeep.session import Session

session = Session()
session.set_value("profile", {"Name": "Ada", "Langs": ["en"]})
session.get_default("profile.name", None, "")   # -> "Ada"

flat = session.serialize()        # plain str -> str mapping
restored = Session()
restored.load(flat)
```

A key that is neither in the session nor in its stored objects raises
`SessionValueNotFound`. `get_into(key, target, force)` builds the value with
`target` (a callable, or a dataclass built from the JSON object) instead of
plain decoded JSON.

### Signed cookies

```python
from datetime import timedelta

from gatekeep.session_cookie import CookieSigner, SessionCookieEngine

engine = SessionCookieEngine(
    expire_after=timedelta(hours=1),
    signer=CookieSigner(secret="secret"),
)
cookie = engine.get_cookie(session)        # Cookie named "GATEKEEP_SESSION"

incoming = Session()
engine.decode_cookie(cookie.value, incoming)
```

A zero `expire_after` (the default) makes a browser-session cookie whose
`expires` is `None`. A cookie with a bad signature is ignored; a session whose
timestamp has passed or is missing is emptied. `parse_session_expires` reads a
setting such as `"720h"`, `"session"` or `None` (30 days), and
`parse_duration` parses durations like `"1h30m"` or `"-300ms"`.
`register_session_engine` and `create_session_engine` keep a registry of
engine factories; `"cookie"` is registered, and an unknown name falls back to
it. Without an explicit signer, each engine signs with a fresh random key.

## Templates

```python
from gatekeep.template import TemplateLoader, template_output_args

loader = TemplateLoader(["app/views"])     # engine names default to "jinja"
loader.refresh()                           # raises TemplateError on a bad template

page = template_output_args(loader, "index.html", {"title": "Home"})  # bytes
```

Files and directories whose names start with a dot are skipped, and a name
found under an earlier path wins over the same name under a later one.
`template_lang(name, lang)` prefers `name.lang` and falls back to `name`;
the language comes from the `currentLocale` view argument in
`template_output_args`. A file whose first line is `#! jinja`, or whose name
looks like `page.jinja.html`, is handed to that engine directly.

`JinjaEngine` autoescapes output, matches names case-insensitively by default,
accepts custom variable delimiters (`JinjaEngine(delimiters="[[ ]]")`) and
exposes the helpers of `gatekeep.template_functions` as globals: `set`,
`append`, `firstof`, `pad`, `errorClass`, `nl2br`, `raw`, `pluralize`,
`slug` and `even`. Other engines implement `TemplateEngine` and are
registered with `register_template_loader`.

## Pooling objects

```python
from gatekeep.simplestack import SimpleLockStack

pool = SimpleLockStack(10, 40, dict)
item = pool.pop()
pool.push(item)
print(pool)   # SS: Capacity:10 Active:0 Stored:10
```

Objects pushed back beyond the maximum size are dropped; objects with a
`destroy()` method have it called on the way in.

## Helpers

```python
from gatekeep.template_functions import slug, pluralize
from gatekeep.util import MimeTypes, equal

slug("Hello, World!")              # "hello-world"
pluralize(3)                       # "s"
MimeTypes({"c": "text/x-c"}).content_type_by_filename("main.c")
# "text/x-c; charset=utf-8"
equal(b"abc", "abc")               # True
```

`MimeTypes.load(path)` reads `extension=type` lines from a file.

## What this package does not do

It has no HTTP server, request or response objects, routing, reverse URLs or
filter chain: the caller reads cookies and headers from its own framework and
passes values in. It ships no message catalogues or translation; supply a
`translator` to `Validation` for message keys. It does not watch files for
changes; call `TemplateLoader.refresh()` when templates change. It installs no
command-line tools.