# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release packaging for relpack.

Builds one target in release mode, copies the binary to its release name
and strips it. Naming, toolchain invocation, packaging, pre-flight checks
and the pipeline that ties them together all live here.
"""
