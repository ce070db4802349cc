"""
foundry — custom host-binary builder.

Generates a throwaway Go module that imports a base program plus a list of
extension packages, then drives the installed ``go`` toolchain to resolve
dependencies and compile a single binary.

Default base program: go.k6.io/k6
"""

__version__ = "0.1.0"
BUILDER_NAME = "foundry_native"
BUILDER_VERSION = "v1"
