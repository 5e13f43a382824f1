"""Application configuration settings"""
import os


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration"""
    # Dataset configuration
    DATASET_PATH = os.environ.get('DATASET_PATH', 'data/diabetes.csv')
    MODEL_PATH = os.environ.get('MODEL_PATH', 'models/diabetes_model_logistic_regression.pkl')
    TARGET_COLUMN = os.environ.get('TARGET_COLUMN', 'y')
    EXPLAIN_ROW = int(os.environ.get('EXPLAIN_ROW', '0'))

    # Logging configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # LIME configuration
    LIME_SEED = os.environ.get('LIME_SEED')
    LIME_NO_OF_SAMPLES = int(os.environ.get('LIME_NO_OF_SAMPLES', '300'))
    LIME_NO_OF_RETRIES = int(os.environ.get('LIME_NO_OF_RETRIES', '3'))
    LIME_NO_OF_FEATURES = int(os.environ.get('LIME_NO_OF_FEATURES', '6'))
    LIME_SEPARABLE_DATASET_RATIO = float(os.environ.get('LIME_SEPARABLE_DATASET_RATIO', '0.9'))
    LIME_PROXIMITY_KERNEL_WIDTH = float(os.environ.get('LIME_PROXIMITY_KERNEL_WIDTH', '0.5'))
    LIME_PROXIMITY_THRESHOLD = float(os.environ.get('LIME_PROXIMITY_THRESHOLD', '0.83'))
    LIME_PROXIMITY_FILTERED_DATASET_MINIMUM = float(os.environ.get('LIME_PROXIMITY_FILTERED_DATASET_MINIMUM', '10'))
    LIME_ENCODING_CLUSTER_THRESHOLD = float(os.environ.get('LIME_ENCODING_CLUSTER_THRESHOLD', '0.07'))
    LIME_ENCODING_GAUSSIAN_FILTER_WIDTH = float(os.environ.get('LIME_ENCODING_GAUSSIAN_FILTER_WIDTH', '0.07'))
    LIME_ADAPT_DATASET_VARIANCE = _env_bool('LIME_ADAPT_DATASET_VARIANCE', True)
    LIME_PENALIZE_BALANCE_SPARSE = _env_bool('LIME_PENALIZE_BALANCE_SPARSE', True)
    LIME_PROXIMITY_FILTER = _env_bool('LIME_PROXIMITY_FILTER', False)
    LIME_FILTER_INTERPRETABLE = _env_bool('LIME_FILTER_INTERPRETABLE', False)
    LIME_FEATURE_SELECTION = _env_bool('LIME_FEATURE_SELECTION', True)
    LIME_NORMALIZE_WEIGHTS = _env_bool('LIME_NORMALIZE_WEIGHTS', False)
    LIME_USE_WLR_MODEL = _env_bool('LIME_USE_WLR_MODEL', True)
    LIME_TRACK_COUNTERFACTUALS = _env_bool('LIME_TRACK_COUNTERFACTUALS', False)
    LIME_HIGH_SCORE_FEATURE_ZONES = _env_bool('LIME_HIGH_SCORE_FEATURE_ZONES', True)
    LIME_BOOTSTRAP_INPUTS = int(os.environ.get('LIME_BOOTSTRAP_INPUTS', '100'))


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestConfig(Config):
    """Test configuration"""
    TESTING = True
    DEBUG = True
    LIME_SEED = '0'
    LIME_NO_OF_SAMPLES = 100


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestConfig,
    'default': DevelopmentConfig
}
