"""dockerize.build — package a compiled project into a container image.

Key Concepts:
    ProjectContext: Project root found by walking up to the manifest.
    MetadataResolver: Merges CLI values, ``Dockerize.toml`` and the manifest
        into a frozen ResolvedConfig.
    DescriptorSet: OCI ``org.opencontainers.image.*`` labels for the image.
    BuildOrchestrator: ``cargo build --release`` in the project root.
    ImageBuilder: ``docker build`` with every tag and label.
    Exporter: ``docker save | gzip`` into ``{name}-{tag}.tgz``.
    DockerizePipeline: Runs the stages in order and returns a PipelineResult.

Related Modules:
    - :mod:`dockerize.core` — errors, logging, settings, process protocol
    - :mod:`dockerize.cli.app` — ``cargo-dockerize`` command
"""

from __future__ import annotations

from dockerize.build.compiler import BuildOrchestrator
from dockerize.build.config import CallerOverrides, MetadataResolver, ResolvedConfig, resolve_config
from dockerize.build.descriptors import DescriptorSet, build_descriptors, lookup_revision
from dockerize.build.export import Exporter, ExportRequest
from dockerize.build.image import ImageBuilder
from dockerize.build.manifest import PackageMetadata, parse_manifest_text, read_manifest
from dockerize.build.process import SubprocessRunner
from dockerize.build.project import ProjectContext, locate_project
from dockerize.build.results import PipelineResult, PipelineState
from dockerize.build.workflow import DockerizePipeline, PipelineObserver, PipelineRun

__all__ = [
    "BuildOrchestrator",
    "CallerOverrides",
    "DescriptorSet",
    "DockerizePipeline",
    "ExportRequest",
    "Exporter",
    "ImageBuilder",
    "MetadataResolver",
    "PackageMetadata",
    "PipelineObserver",
    "PipelineResult",
    "PipelineRun",
    "PipelineState",
    "ProjectContext",
    "ResolvedConfig",
    "SubprocessRunner",
    "build_descriptors",
    "locate_project",
    "lookup_revision",
    "parse_manifest_text",
    "read_manifest",
    "resolve_config",
]
