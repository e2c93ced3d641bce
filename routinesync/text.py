"""Centralized user-facing text for the routinesync CLI."""

from __future__ import annotations

class Styles:
    ERROR = "red"
    WARNING = "yellow"
    SUCCESS = "green"
    INFO = "dim"
    TITLE = "bold cyan"
    TABLE_HEADER = "bold magenta"


class Messages:
    APP_HELP = "routinesync – keep MySQL stored routines in sync with their source files."
    HELP_LOAD = "Load stored routines from source files into the configured schema."
    HELP_LOAD_FILES = (
        "Source files to load. Without files the whole source directory is "
        "synchronized and obsolete routines are dropped."
    )
    HELP_SHOW = "Show the stored routine metadata snapshot."
    HELP_CONFIG_PATH = "Path to the routinesync JSON configuration file."
    HELP_VERSION = "Show the routinesync version and exit."

    ERROR_CONFIG_NOT_FOUND = "Configuration file not found: {path}"
    ERROR_CONFIG_INVALID = "Unable to read configuration file {path}: {reason}"
    ERROR_CONFIG_NOT_OBJECT = "Configuration must be a JSON object."
    ERROR_CONFIG_SECTION = "Configuration section '{section}' must be a JSON object."
    ERROR_CONFIG_MISSING = "Missing required setting '{key}' in section '{section}'."
    ERROR_CONFIG_PORT = "Invalid database port: {value}"
    ERROR_CONFIG_MANGLER = "Unsupported name mangler '{value}'. Allowed values: {allowed}."
    ERROR_CONFIG_EXTENSION = "Invalid source file extension: {value!r}"
    ERROR_CONSTANTS_NOT_MAPPING = "Constants in {origin} must be a JSON object."
    ERROR_CONSTANT_NAME = "Invalid constant name {name!r} in {origin}."
    ERROR_CONSTANT_VALUE = (
        "Constant {name!r} in {origin} must be a string or a number."
    )
    ERROR_CONSTANTS_FILE_MISSING = "Constants file not found: {path}"
    ERROR_CONSTANTS_FILE_INVALID = "Unable to read constants file {path}: {reason}"

    ERROR_DB_CONNECT = "Unable to connect to {host}:{port}/{database}: {reason}"
    ERROR_DB_ROW_COUNT = "Number of rows selected by query is {count}, expected 1."

    ERROR_FILE_MISSING = "File does not exist."
    ERROR_FILE_NOT_FILE = "Path is not a regular file."
    ERROR_FILE_EXTENSION = "File does not have the source extension '{extension}'."
    ERROR_NAME_CONFLICT = "Wrapper method name '{method}' is not unique."
    ERROR_UNKNOWN_PLACEHOLDERS = "Unknown placeholder(s): {names}"
    ERROR_ROUTINE_NOT_FOUND = "Unable to find a create procedure or function statement."
    ERROR_ROUTINE_NAME_MISMATCH = (
        "Stored routine name '{actual}' does not match the file name '{expected}'."
    )
    ERROR_ROUTINE_PARAMETERS = "Unterminated parameter list."
    ERROR_ROUTINE_PARAMETER = "Unable to parse parameter '{text}'."
    ERROR_DESIGNATION_MISSING = "Unable to find the designation type of the stored routine."
    ERROR_DESIGNATION_UNKNOWN = "Unknown designation type '{value}'."
    ERROR_RETURN_MISSING = "Unable to find the return type of the stored function."
    ERROR_READ_SOURCE = "Unable to read source file: {reason}"

    ERROR_METADATA_CORRUPT = "Metadata file {path} is corrupt: {reason}"
    ERROR_METADATA_WRITE = "Unable to write metadata file {path}: {reason}"
    ERROR_METADATA_RERUN = (
        "The database was updated but the metadata file was not. Run the loader "
        "again to resynchronize the metadata."
    )

    INFO_LOAD_RUNNING = "Loading stored routines from {path}..."
    INFO_LOAD_LIST_RUNNING = "Loading {count} stored routine file{plural}..."
    INFO_ROUTINE_LOADED = "Loaded {kind} {name}"
    INFO_ROUTINE_DROPPED = "Dropped {kind} {name}"
    WARNING_DROP_FAILED = "Unable to drop {kind} {name}: {reason}"
    WARNING_NAME_CONFLICT = (
        "The following source files would result in wrapper methods with equal name '{method}':"
    )
    ERROR_FILE = "Error loading file '{path}': {reason}"
    INFO_SQL_MODE = "SQL mode: {mode}"
    INFO_SUMMARY = (
        "{loaded} loaded, {skipped} unchanged, {dropped} dropped, {errors} error{plural}."
    )
    INFO_METADATA_SAVED = "Metadata saved to {path}."
    INFO_METADATA_EMPTY = "No stored routine metadata found at {path}."

    TABLE_TITLE = "Stored routine metadata"
    TABLE_HEADER_ROUTINE = "Routine"
    TABLE_HEADER_TYPE = "Type"
    TABLE_HEADER_DESIGNATION = "Designation"
    TABLE_HEADER_PARAMETERS = "Params"
    TABLE_HEADER_SIGNATURE = "Signature"
