"""Schedules domain - day -> project manager -> assignment tree, its persistence and text export"""
