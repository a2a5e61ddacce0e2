# schemashift

schemashift reads versioned migrations from a source and applies them to a
database. Sources and databases are pluggable drivers. The migration logic
lives in the `Migrate` class in `schemashift.migrate`. That includes walking
up or down, stepping, forcing a version and tracking the dirty state.

## Migration files

The file-based sources pick up files named like this:

```
1_create_users.up.sql
1_create_users.down.sql
2_add_email.up.sql
```

Each name has three parts:

- the leading number is the version;
- the part after the underscore is the identifier;
- `up` or `down` is the direction.

Names that do not match the pattern are ignored. `schemashift.source.parse.parse(name)`
turns a name into a `schemashift.source.migrations.Migration`. If the name
does not match, it raises `ParseError`.

A version may have only an up or only a down migration. When a nil migration
is applied, the recorded version still changes. If two files share a version
and a direction, `DuplicateMigrationError` is raised.

## Database drivers

Subclass `schemashift.migrate.DatabaseDriver` and implement these methods:

| Method | What it does |
| --- | --- |
| `lock()`, `unlock()` | Take and release the database's migration lock. |
| `version()` | Return `(version, dirty)`. Use `-1` when no version is set. |
| `set_version(version, dirty)` | Record the version and its dirty state. |
| `run(body)` | Execute a migration. `body` is a binary file object. |
| `drop()` | Delete everything. |
| `close()` | Release the connection. |

## Usage

Source drivers register their URL scheme when their module is imported.
Import the module of the source you want before you open it by URL:

```python
import schemashift.source.file  # registers the "file" scheme
from schemashift.exceptions import NoChangeError
from schemashift.migrate import new_with_database_instance

database_driver = MyDatabaseDriver()  # your DatabaseDriver subclass
with new_with_database_instance("file://./migrations", "mydb", database_driver) as m:
    try:
        m.up()
    except NoChangeError:
        pass
    version, dirty = m.version()
```

You can also build the object directly with
`Migrate(source_name, source_driver, database_name, database_driver)`.
Used as a context manager, `Migrate` closes the source and the database on
exit.

### Operations

- `up()` applies every up migration after the current version.
- `down()` applies every down migration, down to no version at all.
- `steps(n)` moves `n` versions up, or `-n` down when `n` is negative.
- `migrate(version)` moves up or down to `version`.
- `force(version)` records `version` as clean without running anything.
  A version below -1 raises `InvalidVersionError`.
- `drop()` calls the driver's `drop()`.
- `run(*migrations)` applies `schemashift.migration.Migration` objects as
  given, without consulting the source.
- `version()` returns `(version, dirty)`. If nothing has been applied, it
  raises `NilVersionError`.
- `request_stop()` stops before the next migration.
- `close()` closes the source and the database.

### Settings

These attributes can be changed after construction:

- `logger`: a `logging.Logger` (default `None`). Progress is logged at INFO
  level, and details at DEBUG level when that level is enabled.
- `prefetch_migrations`: default `10`.
- `lock_timeout`: seconds, default `15.0`. If the lock is not acquired in
  time, `LockTimeoutError` is raised.

### Errors

All errors live in `schemashift.exceptions` and derive from `MigrateError`:

| Error | When it is raised |
| --- | --- |
| `NoChangeError` | There was nothing to do. |
| `ShortLimitError` | Fewer migrations existed than the steps requested. Its `short` attribute says how many were missing. |
| `DirtyError` | The database is marked dirty. |
| `LockedError` | This instance already holds the lock. |

A version that does not exist in the source raises `FileNotFoundError`.

If a migration body fails, the database is left marked dirty. The error is
raised as `MigrateError`, and its message starts with the migration's log
string. After that, operations raise `DirtyError` until you repair the
database and call `force(version)`.

## Sources

| Source | Scheme | How to create it |
| --- | --- | --- |
| `schemashift.source.file.FileSource` | `file` | Reads a directory from a `file://` URL. A relative path is resolved against the working directory, and an empty path means the working directory itself. |
| `schemashift.source.fsdriver` | none | `new(fs, path)` reads from a path string or from any object with `joinpath`/`iterdir`, such as `pathlib.Path` or `zipfile.Path`. `PartialDriver` is a base class for your own drivers of this kind. |
| `schemashift.source.bindata` | `bindata` | `with_instance(resource(names, asset_func))` reads named in-memory assets. It cannot be opened from a URL. |
| `schemashift.source.stub.StubSource` | `stub` | Holds a `Migrations` index in memory. Each migration's body is its identifier, which is handy for tests. |

To add your own scheme, subclass `schemashift.source.driver.Driver` and call
`register(name, driver)`. The `source.driver` module also provides:

- `open_source(url)` opens a driver by its URL scheme;
- `list_drivers()` lists the registered schemes.

`schemashift.reader.Reader` is the generator-based walker that `Migrate`
uses to work out which migrations to apply.
`schemashift.util.filter_custom_query(url)` removes query parameters
starting with `x-` from a URL.

## What is not included

- No database drivers are included. You supply a `DatabaseDriver`.
- There are no sources for remote repositories or cloud storage.
- There is no command-line tool. schemashift is used as a library.