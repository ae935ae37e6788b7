"""Shared configuration models and utilities for Bloom"""
