"""Lightweight configuration for the HH->bbtautau event-level analysis.

Plain dicts with no third-party imports, so the module is cheap to import from the
event loop and from worker processes.
"""

# Pile-up jet id working points as stored in the ``jets_pu_id`` bit set.
PU_ID_BITS = {
    "Loose": 2,
    "Medium": 4,
    "Tight": 8,
}

# Pile-up id bit every signal-jet candidate must carry.
SIGNAL_JET_PU_ID = "Loose"

# b-tagging discriminator thresholds per period and tagger.
BTAG_WORKING_POINTS = {
    "Run2016": {
        "CSV":         {"Loose": 0.5426, "Medium": 0.8484, "Tight": 0.9535},
        "DeepCSV":     {"Loose": 0.2217, "Medium": 0.6321, "Tight": 0.8953},
        "DeepFlavour": {"Loose": 0.0614, "Medium": 0.3093, "Tight": 0.7221},
    },
    "Run2017": {
        "CSV":         {"Loose": 0.5803, "Medium": 0.8838, "Tight": 0.9693},
        "DeepCSV":     {"Loose": 0.1522, "Medium": 0.4941, "Tight": 0.8001},
        "DeepFlavour": {"Loose": 0.0521, "Medium": 0.3033, "Tight": 0.7489},
    },
    "Run2018": {
        "DeepCSV":     {"Loose": 0.1241, "Medium": 0.4184, "Tight": 0.7527},
        "DeepFlavour": {"Loose": 0.0494, "Medium": 0.2770, "Tight": 0.7264},
    },
}

# Tracker acceptance used for b-jet candidates (differs per period).
BTAG_ETA_MAX = {
    "Run2016": 2.4,
    "Run2017": 2.5,
    "Run2018": 2.5,
}

# JEC uncertainty payloads (correctionlib JSON) and the tag prefixed to each source name.
JEC_UNCERTAINTY_JSONS = {
    "Run2016": "data/jsonpog/JME/Run2016/jet_jerc.json.gz",
    "Run2017": "data/jsonpog/JME/Run2017/jet_jerc.json.gz",
    "Run2018": "data/jsonpog/JME/Run2018/jet_jerc.json.gz",
}

JEC_UNCERTAINTY_TAGS = {
    "Run2016": "Summer19UL16_V7_MC",
    "Run2017": "Summer19UL17_V5_MC",
    "Run2018": "Summer19UL18_V5_MC",
}

JEC_JET_TYPE = "AK4PFchs"

# --- Physics thresholds (single source of truth for analysis cuts) -------------
CUTS = {
    "bjet_pt_min": 20,
    "vbf_pt_min": 30,
    "vbf_eta_max": 4.7,
    "ecal_noise_pt_max": 50,
    "ecal_noise_eta_low": 2.65,
    "ecal_noise_eta_high": 3.139,
    "ht_jet_pt_min": 20,
    "ht_jet_eta_max": 4.7,
    "ht_jet_eta_max_wide": 5.0,
    "fatjet_msoftdrop_min": 30,
    "fatjet_subjet_dr_max": 0.4,
    "kinfit_ndof": 2,
}
