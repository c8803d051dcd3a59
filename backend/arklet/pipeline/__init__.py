"""
Request pipeline: declarative stage table, assembler and composed ASGI app.
"""
from arklet.pipeline.app import Application, Pipeline
from arklet.pipeline.assembler import STAGES, AssembledPipeline, PipelineAssembler
from arklet.pipeline.stage import MiddlewareSlot, Stage

__all__ = [
    "Application",
    "AssembledPipeline",
    "MiddlewareSlot",
    "Pipeline",
    "PipelineAssembler",
    "STAGES",
    "Stage",
]
