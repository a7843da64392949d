"""Sincronización de proyectos SAP TPM."""
