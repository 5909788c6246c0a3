import os
import sysconfig

from sentrylog.paths import (  # type: ignore[import]
  canonicalize,
  is_in_app,
  is_vendored,
  reconstruct_absolute,
)

ROOT = "/home/dev/workspace"


def test_canonicalize_takes_path_after_last_source_marker():
  assert canonicalize("workspace/src/acme/examples/example.py") == "acme/examples/example.py"
  assert canonicalize("/opt/src/vendor/src/acme/example.py") == "acme/example.py"
  assert canonicalize("/venv/lib/python3.12/site-packages/requests/api.py") == "requests/api.py"
  assert canonicalize("/usr/lib/python3/dist-packages/yaml/__init__.py") == "yaml/__init__.py"


def test_canonicalize_leaves_unmarked_paths_alone():
  assert canonicalize("folder/that-is-not-src/examples/example.py") == "folder/that-is-not-src/examples/example.py"
  assert canonicalize("/path/to/folder/that-is-not-src/examples/example.py") == "/path/to/folder/that-is-not-src/examples/example.py"
  assert canonicalize("") == ""


def test_canonicalize_makes_stdlib_paths_library_relative():
  stdlib = sysconfig.get_paths()["stdlib"]
  assert canonicalize(os.path.join(stdlib, "logging", "__init__.py")) == "logging/__init__.py"


def test_canonicalize_collapses_vendored_paths():
  assert canonicalize("external/com_github_acme_middleware/example.py") == "example.py"
  assert canonicalize("bazel-out/k8-fastbuild/bin/app/example.py") == "example.py"
  assert canonicalize("third_party/lib/example.py", ["third_party/"]) == "example.py"


def test_reconstruct_absolute_joins_onto_source_root():
  assert reconstruct_absolute("workspace/src/acme/example.py", ROOT) == "/home/dev/workspace/src/acme/example.py"
  assert reconstruct_absolute("foo/bar.py", ROOT) == "/home/dev/workspace/foo/bar.py"


def test_reconstruct_absolute_leaves_known_paths_alone():
  assert reconstruct_absolute("bazel-out/darwin-fastbuild/bin/src/example.py", ROOT) == "bazel-out/darwin-fastbuild/bin/src/example.py"
  assert reconstruct_absolute("external/com_github_acme_middleware/example.py", ROOT) == "external/com_github_acme_middleware/example.py"
  assert reconstruct_absolute("<frozen runpy>", ROOT) == "<frozen runpy>"
  assert reconstruct_absolute("/path/to/foo/bar.py", ROOT) == "/path/to/foo/bar.py"
  assert reconstruct_absolute(ROOT + "/foo/bar.py", ROOT) == ROOT + "/foo/bar.py"


def test_reconstruct_absolute_without_root_is_noop():
  assert reconstruct_absolute("foo/bar.py", None) == "foo/bar.py"
  assert reconstruct_absolute("foo/bar.py", "") == "foo/bar.py"


def test_in_app_excludes_libraries_and_vendored_code():
  assert is_in_app("/home/dev/workspace/app/views.py")
  assert not is_in_app("/venv/lib/python3.12/site-packages/requests/api.py")
  assert not is_in_app(os.path.join(sysconfig.get_paths()["stdlib"], "json", "decoder.py"))
  assert not is_in_app("<frozen importlib._bootstrap>")
  assert not is_in_app("/opt/vendor/lib.py", ["/opt/vendor/"])
  assert not is_in_app("")


def test_is_vendored_accepts_extra_prefixes():
  assert is_vendored("external/x.py")
  assert not is_vendored("app/x.py")
  assert is_vendored("app/x.py", ["app/"])
