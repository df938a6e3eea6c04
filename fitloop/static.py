# Events
BEGIN_FIT = "begin_fit"
AFTER_FIT = "after_fit"
BEGIN_EPOCH = "begin_epoch"
AFTER_EPOCH = "after_epoch"
BEGIN_TRAIN = "begin_train"
AFTER_TRAIN = "after_train"
BEGIN_VALIDATE = "begin_validate"
AFTER_VALIDATE = "after_validate"
BEGIN_BATCH = "begin_batch"
AFTER_BATCH = "after_batch"
AFTER_PRED = "after_pred"
AFTER_LOSS = "after_loss"
AFTER_BACKWARD = "after_backward"
AFTER_STEP = "after_step"
AFTER_CANCEL_BATCH = "after_cancel_batch"
AFTER_CANCEL_TRAIN = "after_cancel_train"
AFTER_CANCEL_VALIDATE = "after_cancel_validate"
AFTER_CANCEL_EPOCH = "after_cancel_epoch"
AFTER_CANCEL_FIT = "after_cancel_fit"

EVENTS = (
    BEGIN_FIT,
    AFTER_FIT,
    BEGIN_EPOCH,
    AFTER_EPOCH,
    BEGIN_TRAIN,
    AFTER_TRAIN,
    BEGIN_VALIDATE,
    AFTER_VALIDATE,
    BEGIN_BATCH,
    AFTER_BATCH,
    AFTER_PRED,
    AFTER_LOSS,
    AFTER_BACKWARD,
    AFTER_STEP,
    AFTER_CANCEL_BATCH,
    AFTER_CANCEL_TRAIN,
    AFTER_CANCEL_VALIDATE,
    AFTER_CANCEL_EPOCH,
    AFTER_CANCEL_FIT,
)

# Scopes
FIT = "fit"
EPOCH = "epoch"
TRAIN = "train"
VALIDATE = "validate"
BATCH = "batch"

# Phases
TRAINING = "training"
VALIDATION = "validation"

# Hyper-parameters
LR = "lr"
WD = "wd"
WEIGHT_DECAY = "weight_decay"
DEFAULT_LR = 1e-3

# Config
CONFIG_FILE_CLI_ARGUMENT = "--config-file"
CONFIG_FILE = "config_file"
DATA_FILE_CLI_ARGUMENT = "--data-file"
DATA_FILE = "data_file"
LOG_FILE_CLI_ARGUMENT = "--log-file"
LOG_FILE = "log_file"
MODEL = "model"
LOSS = "loss"
OPTIMIZER = "optimizer"
CALLBACKS = "callbacks"
EPOCHS = "epochs"
BATCH_SIZE = "batch_size"
CLASS_NAME = "class_name"
ARGS = "args"
