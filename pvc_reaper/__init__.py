"""
PVC Reaper - Kubernetes Orphaned PersistentVolumeClaim Cleaner

A Python application that periodically deletes PersistentVolumeClaims
bound to nodes that no longer exist in the cluster, so that pods using
local storage can be rescheduled.
"""

__version__ = "1.0.0"
__author__ = "PVC Reaper Team"
__email__ = "team@pvcreaper.dev"
