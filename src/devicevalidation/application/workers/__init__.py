from .liveness_sweep_worker import LivenessSweepWorker

__all__ = ['LivenessSweepWorker']
