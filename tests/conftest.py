"""
Shared test fixtures and pytest configuration.

Markers:
    @pytest.mark.rustfmt: requires the rustfmt binary (RUSTFMT or PATH)

Run:
    pytest -m rustfmt                 # only full-tier formatting tests
    pytest -m "not rustfmt"           # skip them
"""

import sys
import textwrap
from typing import Optional

import pytest

from expandview.formatting.backends.rustfmt import which_rustfmt


def _rustfmt_available() -> bool:
    """Check if rustfmt can be located."""
    return which_rustfmt() is not None


# Cache the check at module level so it runs once per session
_RUSTFMT_OK: Optional[bool] = None


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "rustfmt: requires the rustfmt binary")


def pytest_collection_modifyitems(config, items):
    """Auto-skip tests whose tool requirements are not met."""
    global _RUSTFMT_OK

    if _RUSTFMT_OK is None:
        _RUSTFMT_OK = _rustfmt_available()

    skip_rustfmt = pytest.mark.skip(reason="rustfmt not available")

    for item in items:
        if "rustfmt" in item.keywords and not _RUSTFMT_OK:
            item.add_marker(skip_rustfmt)


# A compact expansion of a small crate, in the shape rustc prints it.
EXPANDED_CRATE = textwrap.dedent(
    """\
    #![feature(prelude_import)]
    #[prelude_import]
    use std::prelude::rust_2021::*;
    #[macro_use]
    extern crate std;
    pub mod outer {
        pub fn foo() -> u32 { 1 }
        pub struct Point { pub x: i32, pub y: i32 }
        impl Point {
            pub fn new(x: i32, y: i32) -> Self { Point { x, y } }
        }
        impl Default for Point {
            fn default() -> Self { Point::new(0, 0) }
        }
    }
    pub fn foo() -> u32 { 2 }
    #[automatically_derived]
    impl ::core::fmt::Debug for outer::Point {
        #[inline]
        fn fmt(&self, f: &mut ::core::fmt::Formatter) -> ::core::fmt::Result {
            ::core::fmt::Formatter::write_str(f, "Point")
        }
    }
    const _: () = { let _ = 1; };
    pub trait Shape {
        fn area(&self) -> f64;
    }
    """
)


@pytest.fixture
def expanded_crate() -> str:
    return EXPANDED_CRATE


@pytest.fixture
def closed_pager_command() -> list[str]:
    """A pager that exits without reading its input."""
    return [sys.executable, "-c", "import sys; sys.stdin.close()"]
