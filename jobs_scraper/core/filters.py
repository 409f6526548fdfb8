"""LinkedIn search filter codes (URL parameter values)."""

from enum import Enum


class RelevanceFilter(str, Enum):
    RELEVANT = "R"
    RECENT = "DD"


class TimeFilter(str, Enum):
    ANY = ""
    DAY = "r86400"
    WEEK = "r604800"
    MONTH = "r2592000"


class TypeFilter(str, Enum):
    FULL_TIME = "F"
    PART_TIME = "P"
    TEMPORARY = "T"
    CONTRACT = "C"
    INTERNSHIP = "I"
    VOLUNTEER = "V"
    OTHER = "O"


class ExperienceLevelFilter(str, Enum):
    INTERNSHIP = "1"
    ENTRY_LEVEL = "2"
    ASSOCIATE = "3"
    MID_SENIOR = "4"
    DIRECTOR = "5"
    EXECUTIVE = "6"


class OnSiteOrRemoteFilter(str, Enum):
    ON_SITE = "1"
    REMOTE = "2"
    HYBRID = "3"


class IndustryFilter(str, Enum):
    AIRLINES_AVIATION = "94"
    BANKING = "41"
    COMPUTER_GAMES = "109"
    CONSTRUCTION = "48"
    EDUCATION = "69"
    FINANCIAL_SERVICES = "43"
    HOSPITALS_HEALTH_CARE = "14"
    IT_SERVICES = "96"
    MANUFACTURING = "25"
    PHARMACEUTICAL_MANUFACTURING = "15"
    RETAIL = "27"
    SOFTWARE_DEVELOPMENT = "4"
    STAFFING_RECRUITING = "104"
    TELECOMMUNICATIONS = "8"
